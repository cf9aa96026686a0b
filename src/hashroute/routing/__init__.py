"""Routing: compiled route table, named URL generation and the router contract.

Routes are registered during setup and compiled into an immutable
lookup structure before the first request.
"""
