# Overview: Pytest coverage for payload validation and list parameter parsing.

import pytest

from orderdesk.errors import ValidationError
from orderdesk.models import Product
from orderdesk.services.listing import like_pattern, parse_list_params
from orderdesk.services.product_service import SORTABLE
from orderdesk.validation import (
    ModelValidationPolicy,
    enforce_rules_price,
    parse_id,
    parse_positive_int,
    validate_payload,
)


POLICY = ModelValidationPolicy(
    writable_fields={"name": "name", "quantity": "quantity", "supplier": "supplier", "discountPercent": "discount_percent"},
    required_on_create=frozenset({"name"}),
)


class TestValidatePayload:
    def test_coerces_form_strings(self):
        patch = validate_payload(
            model=Product,
            payload={"name": "  Lamp ", "quantity": "7", "discountPercent": "2.5"},
            policy=POLICY,
            partial=False,
        )
        assert patch == {"name": "Lamp", "quantity": 7, "discount_percent": 2.5}

    def test_organization_id_is_ignored(self):
        patch = validate_payload(model=Product, payload={"name": "Lamp", "organizationId": "3"}, policy=POLICY, partial=False)
        assert patch == {"name": "Lamp"}

    @pytest.mark.parametrize("quantity", ["1.5", "1e3", "seven", 2.5])
    def test_rejects_non_integers(self, quantity):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"name": "Lamp", "quantity": quantity}, policy=POLICY, partial=False)

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError) as exc:
            validate_payload(model=Product, payload={"name": "Lamp", "owner_user_id": 1}, policy=POLICY, partial=False)
        assert exc.value.message == "Field not allowed: owner_user_id"

    def test_partial_skips_required(self):
        assert validate_payload(model=Product, payload={"quantity": 1}, policy=POLICY, partial=True) == {"quantity": 1}

    def test_length_limit(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Product, payload={"name": "x" * 300}, policy=POLICY, partial=False)


class TestScalarParsers:
    @pytest.mark.parametrize("value,expected", [(5, 5), ("12", 12), (" 3 ", 3)])
    def test_parse_id(self, value, expected):
        assert parse_id(value, "bad") == expected

    @pytest.mark.parametrize("value", [0, -1, "abc", "", None, True, "1.0"])
    def test_parse_id_rejects(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_id(value, "bad id")
        assert exc.value.message == "bad id"

    def test_parse_positive_int_accepts_whole_floats(self):
        assert parse_positive_int(3.0, "quantity") == 3

    def test_price_bounds(self):
        assert enforce_rules_price("0", allow_zero=True) == 0
        with pytest.raises(ValidationError):
            enforce_rules_price("0", allow_zero=False)
        with pytest.raises(ValidationError):
            enforce_rules_price(float("nan"), allow_zero=True)


class TestListParams:
    def test_defaults(self):
        params = parse_list_params({}, SORTABLE)
        assert (params.page, params.limit, params.sort, params.descending, params.search) == (1, 5, "createdAt", False, "")
        assert params.offset == 0

    def test_limit_is_capped(self):
        assert parse_list_params({"limit": "1000"}, SORTABLE).limit == 100

    def test_offset(self):
        assert parse_list_params({"page": "3", "limit": "10"}, SORTABLE).offset == 20

    def test_like_pattern_escapes(self):
        assert like_pattern("50%_off") == "%50\\%\\_off%"
