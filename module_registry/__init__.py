"""
Module Registry
Serves Terraform modules straight out of git repositories.
"""

__version__ = "0.1.0"
__package_name__ = "module-registry"
