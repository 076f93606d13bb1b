# SPDX-License-Identifier: MIT
"""Deployment services.

Services implement the deploy logic, coordinating between the domain layer
(core/) and infrastructure (platform/, git/).
"""

from profdeploy.services.branch import BranchResolver, Revision
from profdeploy.services.delta import DeltaSnapshot, DeltaTracker, Domain, classify
from profdeploy.services.pipeline import (
    PipelineRunner,
    PipelineState,
    ProfileReport,
    RunFailure,
    RunOptions,
    RunReport,
)
from profdeploy.services.processes import Lifecycle, ProcessLifecycleManager
from profdeploy.services.registry import ProfileRegistry, SelectionRequest
from profdeploy.services.tagger import VersionTagger

__all__ = [
    # Selection
    "ProfileRegistry",
    "SelectionRequest",
    # Deltas
    "DeltaSnapshot",
    "DeltaTracker",
    "Domain",
    "classify",
    # Revisions
    "BranchResolver",
    "Revision",
    # Processes
    "Lifecycle",
    "ProcessLifecycleManager",
    # Releases
    "VersionTagger",
    # Pipeline
    "PipelineRunner",
    "PipelineState",
    "ProfileReport",
    "RunFailure",
    "RunOptions",
    "RunReport",
]
