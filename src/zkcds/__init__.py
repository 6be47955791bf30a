"""
zkcds: Private contact discovery.

Uses a two-round-trip blind query over a prefix-bucketed index:
1. Blind: client sends an N-bit hash prefix and a blinded phone point,
   server returns it double-blinded along with the matching bucket
2. Reveal: on a match the client unblinds the user point and sends it
   back, and only then does the server learn the user ID

The server NEVER sees the phone number.
The client NEVER learns user IDs or the full index.
"""

__version__ = "0.1.0"
