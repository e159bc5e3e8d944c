"""
VaultSync — keep a note vault in step with its git remote.

Pulls, commits and pushes run one at a time through a single-flight
queue, whether they come from a timer or from the user.
"""

import os

__version__ = "0.1.0"
__author__ = "smilinTux"

VAULTSYNC_HOME = os.environ.get("VAULTSYNC_HOME", "~/.vaultsync")
