"""
Woodwatch - a liveness monitor for peers that send ICMP echo requests.

Peers are identified by network ranges. Each monitor cycle a peer is
classified as up, down or somewhere in between, debounced against
transient packet loss, and state changes are posted to webhooks.
"""

__version__ = "0.1.0"
