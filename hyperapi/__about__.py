__version__ = "0.3.0"
__description__ = "hyperapi : schema driven hypermedia REST resources for Flask"
