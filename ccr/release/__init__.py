"""Release flow.

- semver: version rules and tag conventions
- manifest: package.json discovery and write-back
- config: persisted per-repository state
- changelog: changelog backup, regeneration and restore
- commits: conventional commit parsing, bump recommendation
- prompt: user interaction
- status, orchestrator: the release decision and its side effects
"""

from __future__ import annotations
