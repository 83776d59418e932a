from decimal import Decimal
from unittest.mock import MagicMock, patch

import httpx
import pytest
from prometheus_client import REGISTRY

from app.errors import IngestionError
from app.models import Lead
from app.services import lead_ingestion

ENDPOINT = "https://leads.example.com/api/v1/leads"


def _record(record_id, **overrides):
    data = {
        "id": record_id,
        "contactName": "Morgan Seller",
        "contactPhone": "555-0142",
        "vehicleYear": 2019,
        "vehicleMake": "Honda",
        "vehicleModel": "Civic",
        "origin": "Denver, CO",
        "originZipcode": "80202",
        "destination": "Seattle, WA",
        "pickupDate": "2025-06-18T00:00:00Z",
        "carrierFees": "650.00",
        "brokerFees": "150.00",
    }
    data.update(overrides)
    return data


def test_select_adapter_by_shape():
    assert isinstance(lead_ingestion.select_adapter([]), lead_ingestion.ArrayPayloadAdapter)
    assert isinstance(lead_ingestion.select_adapter({"data": []}), lead_ingestion.EnvelopePayloadAdapter)
    assert isinstance(lead_ingestion.select_adapter({"leads": []}), lead_ingestion.EnvelopePayloadAdapter)


def test_unrecognized_payload_is_rejected():
    with pytest.raises(IngestionError) as exc:
        lead_ingestion.select_adapter({"results": "nope"})
    assert exc.value.code == "unrecognized_payload"
    assert exc.value.status_code == 422


def test_invalid_record_names_index():
    payload = [_record("a-1"), _record("a-2", origin="")]

    with pytest.raises(IngestionError) as exc:
        lead_ingestion.select_adapter(payload).parse(payload)
    assert exc.value.code == "invalid_record"
    assert "Record 1" in exc.value.detail


def test_external_record_accepts_snake_case_and_numeric_ids():
    record = lead_ingestion.ExternalLeadRecord.model_validate(
        {
            "id": 991,
            "contact_name": "Pat",
            "contact_phone": "555-0101",
            "origin": "Austin, TX",
            "destination": "Reno, NV",
            "pickup_date": "2025-06-02T00:00:00Z",
        }
    )
    assert record.id == "991"


def test_ingest_creates_leads_and_skips_known(db_session, customer):
    payload = {"data": [_record("ext-1"), _record("ext-2")]}

    result = lead_ingestion.ingest_leads(db_session, customer.id, ENDPOINT, payload=payload)

    assert len(result.created) == 2
    assert result.skipped == 0
    lead = result.created[0]
    assert lead.source == ENDPOINT
    assert lead.external_id == "ext-1"
    assert lead.vehicle_year == "2019"
    assert lead.total_tariff == Decimal("800.00")

    again = lead_ingestion.ingest_leads(db_session, customer.id, ENDPOINT, payload=[_record("ext-2"), _record("ext-3")])

    assert [row.external_id for row in again.created] == ["ext-3"]
    assert again.skipped == 1
    assert db_session.query(Lead).count() == 3


def test_invalid_record_aborts_run(db_session, customer):
    payload = [_record("ok-1"), {"id": "broken"}]

    with pytest.raises(IngestionError):
        lead_ingestion.ingest_leads(db_session, customer.id, ENDPOINT, payload=payload)
    assert db_session.query(Lead).count() == 0


def test_fetch_payload_sends_bearer_token():
    response = MagicMock()
    response.json.return_value = [_record("x-1")]

    with patch("app.services.lead_ingestion.httpx.get", return_value=response) as mock_get:
        payload = lead_ingestion.fetch_payload(ENDPOINT, api_key="secret-key")

    assert payload == [_record("x-1")]
    headers = mock_get.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer secret-key"
    response.raise_for_status.assert_called_once()


def test_fetch_payload_maps_http_errors():
    request = httpx.Request("GET", ENDPOINT)
    failure = httpx.ConnectError("connection refused", request=request)

    with patch("app.services.lead_ingestion.httpx.get", side_effect=failure):
        with pytest.raises(IngestionError) as exc:
            lead_ingestion.fetch_payload(ENDPOINT)

    assert exc.value.status_code == 502
    assert exc.value.retryable is True


def test_ingest_fetches_when_no_payload(db_session, customer):
    with patch(
        "app.services.lead_ingestion.fetch_payload",
        return_value={"leads": [_record("remote-1")]},
    ) as mock_fetch:
        result = lead_ingestion.ingest_leads(db_session, customer.id, ENDPOINT, api_key="k")

    mock_fetch.assert_called_once_with(ENDPOINT, "k")
    assert [row.external_id for row in result.created] == ["remote-1"]


def _ingested(outcome):
    return REGISTRY.get_sample_value("pipeline_ingested_leads_total", {"outcome": outcome}) or 0.0


def test_ingest_counts_outcomes(db_session, customer):
    created_before = _ingested("created")
    skipped_before = _ingested("skipped")

    lead_ingestion.ingest_leads(db_session, customer.id, ENDPOINT, payload=[_record("m-1")])
    lead_ingestion.ingest_leads(db_session, customer.id, ENDPOINT, payload=[_record("m-1"), _record("m-2")])

    assert _ingested("created") - created_before == 2
    assert _ingested("skipped") - skipped_before == 1
