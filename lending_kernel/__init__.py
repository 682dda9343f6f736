"""
Lending kernel: persistence, domain events, ingestion ledger, event bus
and snapshot aggregation for the lending analytics engine.
"""
