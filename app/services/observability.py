"""Prometheus metrics for the shipping pipeline."""

from __future__ import annotations

from prometheus_client import Counter

CONVERSIONS = Counter(
    "pipeline_conversions_total",
    "Pipeline conversions by kind and outcome",
    ["kind", "outcome"],  # outcome: created, existing, duplicate, error
)

PUBLIC_ID_RETRIES = Counter(
    "pipeline_public_id_retries_total",
    "Public identifier allocations retried after a uniqueness conflict",
)

INGESTED_LEADS = Counter(
    "pipeline_ingested_leads_total",
    "Leads received from external endpoints",
    ["outcome"],  # outcome: created, skipped
)
