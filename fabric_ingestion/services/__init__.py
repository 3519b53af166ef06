"""Business logic services for the fabric ingestion pipeline.

Available Services:
    - normalization: Collection/color splitting and tolerant value parsing
    - rules: Parsing rule storage and one-time inference
    - structure_detector: Source layout drift detection
    - email: Mailbox access and attachment selection
    - reconciliation: Catalog merge under exclusion and manual-lock constraints
    - supplier_runner: Per-supplier run error boundary and run-all fan-out
    - manual_upload: Operator uploads of authoritative data
    - exclusions: Operator exclusion markers on catalog rows
    - snapshot: Workbook export of the latest parsed records
"""
