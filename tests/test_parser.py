"""
tests/test_parser.py
Payload → CalculationRequest.
"""
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from calculation_engine.exceptions import InvalidRequest
from query_processor.models import OtherCost, is_known_category
from query_processor.parser import RequestParser


@pytest.fixture
def parser() -> RequestParser:
    return RequestParser()


class TestFromPayload:

    def test_snake_case(self, parser):
        req = parser.from_payload({
            "pol": " busan ", "pod": "Qingdao", "destination_id": "osh", "weight": 5000,
            "reference_date": "2025-06-01", "include_dp": True,
        })
        assert (req.pol, req.pod, req.destination_id) == ("BUSAN", "QINGDAO", "OSH")
        assert req.weight == 5000.0
        assert req.reference_date == date(2025, 6, 1)
        assert req.include_dp is True
        assert req.selected_sea_freight_ids is None

    def test_camel_case_and_extras(self, parser):
        req = parser.from_payload({
            "pol": "BUSAN", "pod": "QINGDAO", "destinationId": "OSH", "weight": "1200.5",
            "selectedSeaFreightIds": ["sf-1", "asf-1"],
            "excludedCosts": ["DTHC", "other_0"],
            "otherCosts": [{"category": "Customs", "amount": "25"}],
            "domesticTransport": 40,
        })
        assert req.weight == 1200.5
        assert req.selected_sea_freight_ids == frozenset({"sf-1", "asf-1"})
        assert req.excluded_categories == frozenset({"dthc", "other_0"})
        assert req.other_costs == (OtherCost("Customs", 25.0),)
        assert req.domestic_transport == 40.0

    def test_excluded_categories_as_flags(self, parser):
        req = parser.from_payload({"excluded_categories": {"dthc": True, "dp": False}})
        assert req.excluded_categories == frozenset({"dthc"})

    def test_empty_selection_is_kept(self, parser):
        req = parser.from_payload({"selected_sea_freight_ids": []})
        assert req.selected_sea_freight_ids == frozenset()

    @pytest.mark.parametrize("raw", ["", "   "])
    def test_blank_selection_means_no_preference(self, parser, raw):
        req = parser.from_payload({"selected_sea_freight_ids": raw})
        assert req.selected_sea_freight_ids is None

    def test_comma_separated_selection(self, parser):
        req = parser.from_payload({"selected_sea_freight_ids": "sf-1, asf-1"})
        assert req.selected_sea_freight_ids == frozenset({"sf-1", "asf-1"})

    def test_missing_fields_left_for_guardrail(self, parser):
        req = parser.from_payload({})
        assert req.pol == "" and req.weight == 0.0
        assert req.domestic_transport is None

    @pytest.mark.parametrize("payload", [
        {"weight": "heavy"},
        {"weight": True},
        {"reference_date": "June 1st"},
        {"include_dp": "maybe"},
        {"other_costs": [{"label": "x"}]},
        {"other_costs": "customs"},
        {"selected_sea_freight_ids": 5},
    ])
    def test_malformed_values_raise(self, parser, payload):
        with pytest.raises(InvalidRequest):
            parser.from_payload(payload)

    def test_not_a_dict(self, parser):
        with pytest.raises(InvalidRequest):
            parser.from_payload(["pol", "BUSAN"])


class TestCategories:

    @pytest.mark.parametrize("key", ["dthc", "sea_freight", "domestic_transport", "other_0", "other_12"])
    def test_known(self, key):
        assert is_known_category(key)

    @pytest.mark.parametrize("key", ["other_", "other_x", "vat", ""])
    def test_unknown(self, key):
        assert not is_known_category(key)
