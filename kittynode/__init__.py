"""
Kittynode - install and operate Ethereum node packages in Docker.
"""

__version__ = "0.1.0"
