from matchday.ingestion.gateway import IngestionGateway, event_fields, verify_signature

__all__ = ["IngestionGateway", "event_fields", "verify_signature"]
