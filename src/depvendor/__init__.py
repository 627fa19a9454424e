"""
depvendor -- vendor local and git dependencies into a project.

Reads a deps.toml manifest and converges the vendor directory to it:
local paths become directory links, git sources are cloned once and
hard-reset to their pinned branch, tag, or revision on every run.
"""

__version__ = "0.1.0"

MANIFEST_FILE = "deps.toml"
GLOBAL_CONFIG_FILE = ".deprc"
DEFAULT_LIB_DIR = "VENDOR"

GLOBAL_CONFIG_ENV = "DEPVENDOR_RC"
