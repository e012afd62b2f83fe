"""Version information for PerfOps CLI."""

__version__ = "1.0.0"
__version_info__ = (1, 0, 0)

# Release information
__author__ = "PerfOps CLI Authors"
__license__ = "Apache-2.0"
__url__ = "https://github.com/ProspectOne/perfops-cli"
__description__ = "Command-line client for the PerfOps network diagnostics API"
