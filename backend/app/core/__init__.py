"""
Core package: plumbing shared by the risk, responder, record and chat APIs.

Modules:
    config          settings loaded from the environment / .env
    logging_config  JSON logs in production, coloured console otherwise
    errors          DisasterSenseError hierarchy and FastAPI handlers
    middleware      request timing and correlation IDs
    health          liveness / readiness aggregation
    database        async SQLAlchemy engine for the record store
    cache           Redis cache for responder lookups
"""
