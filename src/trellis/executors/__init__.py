"""Command executor interface and implementations."""

from .base import CommandExecutor
from .podman import PodmanExecutor
from .scripted import ExecutorCall, ScriptedExecutor

__all__ = [
    "CommandExecutor",
    "ExecutorCall",
    "PodmanExecutor",
    "ScriptedExecutor",
]
