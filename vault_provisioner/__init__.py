"""Declarative provisioning of HashiCorp Vault resources.

Resources and data sources map Vault REST endpoints onto flat schemas; the
engine plans and applies them against a JSON state file.
"""

__version__ = "0.1.0"
