"""Version information for :mod:`sparqlclient`."""

VERSION = "0.1.0"
