# ballot_engine/core/domain/__init__.py
"""
Domain Entities and Value Objects.

This package defines the core data structures and pure rules of the ballot
engine: account snapshots (PollConfig, CandidateAccount, VoterRecord),
ballots, address derivation and the D21 validator. Nothing here performs
I/O.
"""
