# SPDX-License-Identifier: MIT
"""Multi-profile deployment orchestrator."""

__version__ = "0.1.0"
