"""devstrap - declarative workstation and server bootstrap.

Resolves a layered configuration, detects the platform and converges the
host towards the declared toolset, shell setup and editor integrations.
"""

__version__ = "0.4.0"
