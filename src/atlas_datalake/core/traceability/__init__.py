"""
Rastreabilidade do Atlas DataLake — manifest de execução.

API pública:
    - AtlasManifest, create_manifest
    - add_event, action_started, action_finished, action_failed
    - save_manifest, load_manifest
"""

from .manifest import (
    AtlasManifest,
    action_failed,
    action_finished,
    action_started,
    add_event,
    create_manifest,
    load_manifest,
    save_manifest,
)

__all__ = [
    "AtlasManifest",
    "create_manifest",
    "add_event",
    "action_started",
    "action_finished",
    "action_failed",
    "save_manifest",
    "load_manifest",
]
