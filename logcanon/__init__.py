"""logcanon: canonical security events from heterogeneous raw logs."""

__version__ = "0.1.0"
__author__ = "logcanon contributors"
__license__ = "MIT"
