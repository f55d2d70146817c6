"""
kusari-cli

Command-line client for the Kusari platform: browser login, repository
bundle scans through Kusari Inspector, and SBOM/VEX document uploads.
"""

__version__ = "0.4.0"
