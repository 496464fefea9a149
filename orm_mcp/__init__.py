"""
MCP server for discovering content on the O'Reilly learning platform and
managing playlists, driven through a headless browser session.
"""

__version__ = "0.1.0"
