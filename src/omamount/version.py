# This variable is intended to be overwritten during the build/release process
__version__ = "0.1.0"
