# SPDX-License-Identifier: MIT
"""Git operations used by the deploy pipeline.

Usage:
    from profdeploy.git import Repository

    repo = Repository(executor, ctx)
    tags = repo.list_tags()
"""

from profdeploy.git.repository import Repository

__all__ = ["Repository"]
