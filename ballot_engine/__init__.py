# ballot_engine/__init__.py
"""
D21 Ballot Engine.

Off-chain companion for the D21 voting program: derives program addresses,
validates ballots against poll rules and assembles unsigned vote
transactions. Laid out as a Modular Monolith following Hexagonal
Architecture (Ports & Adapters).
"""

__version__ = "1.0.0"
