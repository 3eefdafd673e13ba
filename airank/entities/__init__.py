from airank.entities.principal import Principal
from airank.entities.hourly_bucket import HourlyBucket
from airank.entities.ingest_receipt import IngestReceipt

__all__ = ["Principal", "HourlyBucket", "IngestReceipt"]
