# Overview: Pytest coverage for customer records, blacklisting and listing.

import pytest

from conftest import make_customer
from orderdesk.errors import ConflictError, NotFoundError, ValidationError
from orderdesk.services import customer_service
from orderdesk.services.membership_service import OrgContext


NEW_CUSTOMER = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ADA@Engine.test",
    "phoneNumber": "555-0100",
    "companyName": "Analytical",
    "address": {"street": "1 Loop Rd", "city": "London", "zipCode": "N1", "country": "UK"},
}


class TestAddCustomer:
    def test_add(self, db_session, owner_ctx):
        customer = customer_service.add_customer(owner_ctx, NEW_CUSTOMER)

        assert customer.organization_id == owner_ctx.organization_id
        assert customer.owner_user_id == owner_ctx.actor_id
        assert customer.email == "ada@engine.test"
        assert customer.black_listed is False
        data = customer.to_dict()
        assert data["address"] == {
            "street": "1 Loop Rd", "city": "London", "state": "", "zipCode": "N1", "country": "UK",
        }
        assert data["blackListed"] is False

    def test_last_name_optional(self, db_session, owner_ctx):
        payload = {k: v for k, v in NEW_CUSTOMER.items() if k not in ("lastName", "companyName")}
        customer = customer_service.add_customer(owner_ctx, payload)
        assert customer.last_name == ""
        assert customer.company_name is None

    @pytest.mark.parametrize("missing", ["firstName", "email", "phoneNumber"])
    def test_required_fields(self, db_session, owner_ctx, missing):
        with pytest.raises(ValidationError) as exc:
            customer_service.add_customer(owner_ctx, {**NEW_CUSTOMER, missing: ""})
        assert exc.value.message == "All Fields are Required"

    @pytest.mark.parametrize("field,value", [("email", "ada@engine.test"), ("phoneNumber", "555-0100")])
    def test_duplicate_email_or_phone(self, db_session, owner_ctx, field, value):
        customer_service.add_customer(owner_ctx, NEW_CUSTOMER)
        other = {**NEW_CUSTOMER, "email": "other@engine.test", "phoneNumber": "555-0199", field: value}
        with pytest.raises(ConflictError) as exc:
            customer_service.add_customer(owner_ctx, other)
        assert exc.value.message == "Customer Already Exists"


class TestUpdateCustomer:
    def test_update_keeps_email(self, owner_ctx, customer):
        updated = customer_service.update_customer(owner_ctx, customer.id, {
            "firstName": "Janet",
            "phoneNumber": "555-7777",
            "email": "changed@customer.test",
            "address": {"city": "Paris"},
        })
        assert updated.first_name == "Janet"
        assert updated.last_name == ""
        assert updated.phone_number == "555-7777"
        assert updated.email == "jane@customer.test"
        assert updated.address_city == "Paris"

    def test_phone_clash(self, db_session, org, owner, owner_ctx, customer):
        other = make_customer(db_session, org, owner, first_name="Bob")
        with pytest.raises(ConflictError) as exc:
            customer_service.update_customer(owner_ctx, customer.id, {
                "firstName": "Jane", "phoneNumber": other.phone_number,
            })
        assert exc.value.message == "Phone number is already used by another customer"

    def test_keeping_own_phone_is_fine(self, owner_ctx, customer):
        updated = customer_service.update_customer(owner_ctx, customer.id, {
            "firstName": "Jane", "lastName": "Roe", "phoneNumber": customer.phone_number,
        })
        assert updated.last_name == "Roe"

    def test_other_org_customer_not_found(self, db_session, owner_ctx, other_org, outsider):
        foreign = make_customer(db_session, other_org, outsider, first_name="Zed")
        with pytest.raises(NotFoundError):
            customer_service.update_customer(owner_ctx, foreign.id, {"firstName": "X", "phoneNumber": "1"})


class TestBlacklistAndListing:
    def test_toggle_blacklist(self, owner_ctx, customer):
        assert customer_service.toggle_blacklist(owner_ctx, customer.id).black_listed is True
        assert customer_service.toggle_blacklist(owner_ctx, customer.id).black_listed is False

    def test_blacklisted_hidden_by_default(self, db_session, org, owner, owner_ctx, customer):
        bob = make_customer(db_session, org, owner, first_name="Bob")
        customer_service.toggle_blacklist(owner_ctx, bob.id)

        visible = customer_service.list_customers(owner_ctx, {})
        assert [c["firstName"] for c in visible["customers"]] == ["Jane"]
        assert visible["totalCustomers"] == 1

        hidden = customer_service.list_customers(owner_ctx, {"blacklist": "true"})
        assert [c["firstName"] for c in hidden["customers"]] == ["Bob"]

    def test_search_by_company(self, db_session, org, owner, owner_ctx, customer):
        make_customer(db_session, org, owner, first_name="Bob", company="Stone Works")
        result = customer_service.list_customers(owner_ctx, {"search": "doe ind"})
        assert [c["firstName"] for c in result["customers"]] == ["Jane"]

    def test_search_escapes_wildcards(self, owner_ctx, customer):
        assert customer_service.list_customers(owner_ctx, {"search": "%"})["customers"] == []

    def test_page_past_the_end(self, owner_ctx, customer):
        result = customer_service.list_customers(owner_ctx, {"page": "3"})
        assert result["currentPage"] == 3
        assert result["totalCustomers"] == 1
        assert result["customers"] == []

    def test_scoped_to_org(self, customer, other_org, outsider):
        ctx = OrgContext(actor_id=outsider.id, organization_id=other_org.id, role="Owner")
        assert customer_service.list_customers(ctx, {})["totalCustomers"] == 0

    @pytest.mark.parametrize("args", [{"page": "0"}, {"limit": "x"}, {"order": "sideways"}])
    def test_bad_list_params(self, owner_ctx, args):
        with pytest.raises(ValidationError):
            customer_service.list_customers(owner_ctx, args)
