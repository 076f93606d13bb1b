# SPDX-License-Identifier: MIT
"""Core domain types and configuration."""

from .config import DeployConfig, EnvSettings, load_config
from .errors import (
    BranchSyntaxError,
    ConfigError,
    DeployError,
    ErrorCode,
    ExternalCommandError,
    FileAccessError,
    PeerConflictError,
    SelectionError,
    SemverResolutionError,
)
from .profile import Profile
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "DeployConfig",
    "EnvSettings",
    "load_config",
    # errors
    "BranchSyntaxError",
    "ConfigError",
    "DeployError",
    "ErrorCode",
    "ExternalCommandError",
    "FileAccessError",
    "PeerConflictError",
    "SelectionError",
    "SemverResolutionError",
    # profile
    "Profile",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
