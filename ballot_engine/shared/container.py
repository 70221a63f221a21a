# ballot_engine/shared/container.py
from dependency_injector import containers, providers

from ballot_engine.shared.config import settings
from ballot_engine.adapters.fallback.static_resolver import StaticFallbackResolver
from ballot_engine.adapters.ledger.solana_rpc import SolanaRpcGateway
from ballot_engine.core.domain.addresses import AddressDeriver

from ballot_engine.core.use_cases.ballot_service import BallotService
from ballot_engine.core.use_cases.build_transaction import TransactionBuilder
from ballot_engine.core.use_cases.diagnose_poll import DiagnosePoll
from ballot_engine.core.use_cases.reclaim_voter_record import ReclaimVoterRecord
from ballot_engine.core.use_cases.submit_ballot import SubmitBallot


class Container(containers.DeclarativeContainer):
    """
    Dependency Injection Container.

    This declarative container defines the assembly instructions for the application.
    """

    # 1. Configuration
    # Wrapping the settings object allows overriding in tests.
    config = providers.Configuration(pydantic_settings=[settings])

    # 2. Domain services
    address_deriver = providers.Singleton(
        AddressDeriver,
        program_id=config.LEDGER_PROGRAM_ID,
    )

    # 3. Gateways (Infrastructure Adapters)

    # Ledger (Singleton: shares the circuit breaker state across requests)
    ledger_gateway = providers.Singleton(
        SolanaRpcGateway,
        rpc_url=config.LEDGER_RPC_URL,
        program_id=config.LEDGER_PROGRAM_ID,
        commitment=config.LEDGER_COMMITMENT,
        timeout=config.LEDGER_TIMEOUT_SEC,
        read_attempts=config.LEDGER_READ_ATTEMPTS,
    )

    # Demo polls (Singleton: the table is loaded once)
    fallback_resolver = providers.Singleton(
        StaticFallbackResolver.from_settings,
        enabled=config.FALLBACK_ENABLED,
        polls_file=config.FALLBACK_POLLS_FILE,
    )

    # 4. Use Cases (Application Logic)

    # Factory: new instance per request (stateless logic),
    # with Singleton dependencies injected.
    transaction_builder = providers.Factory(
        TransactionBuilder,
        gateway=ledger_gateway,
        deriver=address_deriver,
    )

    ballot_service = providers.Factory(
        BallotService,
        gateway=ledger_gateway,
        fallback_resolver=fallback_resolver,
        deriver=address_deriver,
        builder=transaction_builder,
    )

    submit_ballot_use_case = providers.Factory(
        SubmitBallot,
        gateway=ledger_gateway,
    )

    reclaim_voter_record_use_case = providers.Factory(
        ReclaimVoterRecord,
        gateway=ledger_gateway,
        deriver=address_deriver,
        builder=transaction_builder,
    )

    diagnose_poll_use_case = providers.Factory(
        DiagnosePoll,
        gateway=ledger_gateway,
        fallback_resolver=fallback_resolver,
        deriver=address_deriver,
    )

# Instantiate the container for global access (e.g. by FastAPI)
container = Container()
