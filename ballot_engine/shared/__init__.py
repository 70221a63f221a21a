# ballot_engine/shared/__init__.py
"""
Shared utilities package.

This module contains cross-cutting concerns used by both the Core Domain
and Infrastructure Adapters, including:
- Configuration management
- Structured logging
- Distributed tracing (Observability)
- Resilience patterns (Circuit Breaker, bounded retries)
- Dependency Injection wiring
"""
