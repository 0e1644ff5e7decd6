"""Abuse tracking adapters.

Counts flagged events per client and category, and keeps the set of clients
denied for sustained suspicious behaviour.
"""
