"""
Live HLS Proxy
Resolves a channel's live HLS manifest from its public pages and proxies the
master, variant and segment requests so every byte routes back through here.
"""

__version__ = "0.1.0"
__description__ = "Live HLS manifest discovery and playlist proxy"
