"""Idle-server supervisor for Minecraft-style game servers."""

__version__ = "0.1.0"
