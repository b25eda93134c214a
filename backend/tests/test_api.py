# Overview: Pytest coverage for the HTTP surface: envelope, organization gates and end-to-end flows.

"""
API Tests

Drives the blueprints through the Flask test client:
1. Every response uses the {statusCode, data, message, success} envelope
2. Organization-scoped routes require an organization id and an Active
   membership with a suitable role
3. Order, customer and product flows work end to end
"""

import io

import pytest

from conftest import add_membership, auth_headers, get_auth_token, make_product
from orderdesk.extensions import db
from orderdesk.models import Order, Product


@pytest.fixture
def owner_token(client, owner, org):
    return get_auth_token(client, 'owner')


def _png(name='cover.png'):
    return (io.BytesIO(b'\x89PNG\r\n\x1a\nfake'), name)


# =============================================================================
# ENVELOPE AND SYSTEM ROUTES
# =============================================================================

class TestEnvelope:
    def test_health(self, client, db_session):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.json['status'] == 'healthy'
        assert response.json['checks']['database']['status'] == 'healthy'

    def test_unknown_route_uses_error_envelope(self, client, db_session):
        response = client.get('/api/v1/nothing-here')
        assert response.status_code == 404
        assert response.json['success'] is False
        assert response.json['data'] is None
        assert response.json['errors'] == []

    def test_success_envelope(self, client, owner_token, org):
        response = client.get('/api/v1/customers', headers=auth_headers(owner_token, org.id))
        assert response.status_code == 200
        assert set(response.json) == {'statusCode', 'data', 'message', 'success'}
        assert response.json['statusCode'] == 200
        assert response.json['success'] is True
        assert response.json['message'] == 'Fetched Customers Successfully'

    def test_cors_headers_for_allowed_origin(self, client, db_session):
        response = client.get('/api/health', headers={'Origin': 'http://localhost:5173'})
        assert response.headers.get('Access-Control-Allow-Origin') == 'http://localhost:5173'
        assert response.headers.get('Access-Control-Allow-Credentials') == 'true'


# =============================================================================
# ORGANIZATION GATES
# =============================================================================

class TestOrganizationGates:
    """require_membership resolves the organization and checks the role."""

    def test_missing_organization_id(self, client, owner_token):
        response = client.get('/api/v1/products', headers=auth_headers(owner_token))
        assert response.status_code == 400
        assert response.json['message'] == 'Organization ID is required'

    def test_malformed_organization_id(self, client, owner_token):
        response = client.get('/api/v1/products', headers=auth_headers(owner_token, 'abc'))
        assert response.status_code == 400
        assert response.json['message'] == 'Invalid Organization ID'

    def test_query_param_organization_id(self, client, owner_token, org):
        response = client.get(f'/api/v1/products?organizationId={org.id}', headers=auth_headers(owner_token))
        assert response.status_code == 200

    def test_non_member_is_forbidden(self, client, outsider, org):
        token = get_auth_token(client, 'outsider')
        response = client.get('/api/v1/products', headers=auth_headers(token, org.id))
        assert response.status_code == 403

    def test_viewer_can_read_but_not_write(self, client, db_session, member, org, customer, widget):
        add_membership(db_session, member, org, 'Viewer')
        token = get_auth_token(client, 'member')
        headers = auth_headers(token, org.id)

        assert client.get('/api/v1/orders', headers=headers).status_code == 200
        response = client.post('/api/v1/orders', headers=headers, json={
            'customerId': customer.id,
            'products': [{'product': widget.id, 'quantity': 1}],
        })
        assert response.status_code == 403

        db.session.expire_all()
        assert widget.quantity == 10

    def test_unauthenticated(self, client, org):
        response = client.get('/api/v1/orders', headers={'X-Organization-Id': str(org.id)})
        assert response.status_code == 401


# =============================================================================
# ORGANIZATIONS
# =============================================================================

class TestOrganizationRoutes:
    def test_create_and_list(self, client, owner_token, org):
        created = client.post('/api/v1/organizations', headers=auth_headers(owner_token), json={
            'name': 'Second Shop', 'slug': 'second',
        })
        assert created.status_code == 201

        listed = client.get('/api/v1/organizations', headers=auth_headers(owner_token))
        assert sorted(o['slug'] for o in listed.json['data']) == ['acme', 'second']
        assert all(o['role'] == 'Owner' for o in listed.json['data'])

    def test_join_and_members(self, client, owner_token, member, org):
        token = get_auth_token(client, 'member')
        joined = client.post('/api/v1/organizations/join', headers=auth_headers(token), json={
            'inviteCode': org.invite_code,
        })
        assert joined.status_code == 200
        assert joined.json['data']['organization']['id'] == org.id

        members = client.get(f'/api/v1/organizations/{org.id}/members', headers=auth_headers(owner_token))
        assert [m['user']['username'] for m in members.json['data']] == ['owner', 'member']

    def test_add_and_remove_member(self, client, owner_token, member, org):
        added = client.post(f'/api/v1/organizations/{org.id}/members', headers=auth_headers(owner_token), json={
            'email': member.email, 'role': 'Viewer',
        })
        assert added.status_code == 201
        assert added.json['data']['role'] == 'Viewer'

        removed = client.delete(
            f'/api/v1/organizations/{org.id}/members/{member.id}', headers=auth_headers(owner_token)
        )
        assert removed.status_code == 200


# =============================================================================
# END-TO-END FLOWS
# =============================================================================

class TestOrderFlow:
    def test_create_edit_and_complete(self, client, owner_token, org, customer, widget):
        headers = auth_headers(owner_token, org.id)

        created = client.post('/api/v1/orders', headers=headers, json={
            'customerId': customer.id,
            'products': [{'product': widget.id, 'quantity': 3}],
            'paymentMethod': 'Cash',
        })
        assert created.status_code == 200
        assert created.json['message'] == 'Order Created Successfully'
        order = created.json['data']
        assert order['totalPrice'] == 300
        assert order['finalDiscountedPrice'] == pytest.approx(270)
        assert order['products'] == [{'product': widget.id, 'quantity': 3, 'price': 100}]

        edited = client.patch(f"/api/v1/orders/{order['id']}", headers=headers, json={
            'products': [{'productId': widget.id, 'quantity': 2}],
            'additionalDiscountPercent': 10,
        })
        assert edited.status_code == 200
        assert edited.json['data']['finalDiscountedPrice'] == pytest.approx(162)

        status = client.put(f"/api/v1/orders/{order['id']}", headers=headers, json={'status': 'Completed'})
        assert status.json['data']['status'] == 'Completed'

        db.session.expire_all()
        assert widget.quantity == 8

        listed = client.get('/api/v1/orders?status=Completed', headers=headers)
        assert listed.json['data']['totalOrders'] == 1
        assert listed.json['data']['orders'][0]['customerDetails']['firstName'] == 'Jane'

    def test_member_joins_and_orders(self, client, owner_token, org, member, customer, widget):
        """U2 joins Acme by invite code, then orders 3 Widgets and is refused 11."""
        token = get_auth_token(client, 'member')
        joined = client.post('/api/v1/organizations/join', headers=auth_headers(token), json={
            'inviteCode': org.invite_code.lower(),
        })
        assert joined.status_code == 200
        headers = auth_headers(token, org.id)

        placed = client.post('/api/v1/orders', headers=headers, json={
            'customerId': customer.id,
            'products': [{'product': widget.id, 'quantity': 3}],
        })
        assert placed.status_code == 200
        order = placed.json['data']
        assert order['totalPrice'] == 300
        assert order['initialDiscountedPrice'] == pytest.approx(270)
        assert order['finalDiscountedPrice'] == pytest.approx(270)
        db.session.expire_all()
        assert widget.quantity == 7

        refused = client.post('/api/v1/orders', headers=headers, json={
            'customerId': customer.id,
            'products': [{'product': widget.id, 'quantity': 11}],
        })
        assert refused.status_code == 400
        assert refused.json['errors'][0]['available'] == 7
        db.session.expire_all()
        assert widget.quantity == 7
        assert db.session.query(Order).count() == 1

    def test_insufficient_stock_response(self, client, owner_token, org, customer, widget):
        response = client.post('/api/v1/orders', headers=auth_headers(owner_token, org.id), json={
            'customerId': customer.id,
            'products': [{'product': widget.id, 'quantity': 11}],
        })
        assert response.status_code == 400
        assert response.json['message'] == 'Insufficient stock for Widget'
        assert response.json['errors'][0]['available'] == 10

    def test_invalid_status(self, client, owner_token, org, customer, widget):
        headers = auth_headers(owner_token, org.id)
        created = client.post('/api/v1/orders', headers=headers, json={
            'customerId': customer.id,
            'products': [{'product': widget.id, 'quantity': 1}],
        })
        response = client.put(f"/api/v1/orders/{created.json['data']['id']}", headers=headers, json={'status': 'Lost'})
        assert response.status_code == 400

    def test_dashboard(self, client, owner_token, org, widget):
        response = client.get('/api/v1/home', headers=auth_headers(owner_token, org.id))
        assert response.status_code == 200
        assert response.json['data']['stats']['totalProducts'] == 1


class TestCustomerRoutes:
    def test_add_update_blacklist(self, client, owner_token, org):
        headers = auth_headers(owner_token, org.id)
        created = client.post('/api/v1/customers', headers=headers, json={
            'firstName': 'Ada', 'email': 'ada@engine.test', 'phoneNumber': '555-0100',
        })
        assert created.status_code == 201
        cid = created.json['data']['id']

        updated = client.patch(f'/api/v1/customers/{cid}', headers=headers, json={
            'firstName': 'Ada', 'lastName': 'King', 'phoneNumber': '555-0101',
        })
        assert updated.json['data']['lastName'] == 'King'

        toggled = client.patch(f'/api/v1/customers/{cid}/blacklist', headers=headers)
        assert toggled.json['message'] == 'Successfully Added to Blacklist'
        toggled = client.patch(f'/api/v1/customers/{cid}/blacklist', headers=headers)
        assert toggled.json['message'] == 'Successfully Removed from Blacklist'

    def test_legacy_paths(self, client, owner_token, org):
        headers = auth_headers(owner_token, org.id)
        created = client.post('/api/v1/customers/add-customer', headers=headers, json={
            'firstName': 'Old', 'email': 'old@engine.test', 'phoneNumber': '555-0300',
        })
        assert created.status_code == 201
        cid = created.json['data']['id']

        listed = client.get('/api/v1/customers/getCustomers', headers=headers)
        assert listed.status_code == 200
        assert listed.json['data']['totalCustomers'] == 1

        updated = client.patch(f'/api/v1/customers/update-customer/{cid}', headers=headers, json={
            'firstName': 'Older', 'phoneNumber': '555-0301',
        })
        assert updated.json['data']['firstName'] == 'Older'

        toggled = client.patch(f'/api/v1/customers/toggle-blacklist-customer/{cid}', headers=headers)
        assert toggled.json['message'] == 'Successfully Added to Blacklist'

    def test_organization_id_in_body(self, client, owner_token, org):
        response = client.post('/api/v1/customers', headers=auth_headers(owner_token), json={
            'organizationId': org.id,
            'firstName': 'Body', 'email': 'body@engine.test', 'phoneNumber': '555-0200',
        })
        assert response.status_code == 201


class TestProductRoutes:
    def test_multipart_create_and_serve_image(self, client, owner_token, org):
        response = client.post(
            '/api/v1/products',
            headers=auth_headers(owner_token, org.id),
            data={
                'name': 'Lamp',
                'description': 'Desk lamp',
                'category': 'Lighting',
                'price': '49.5',
                'quantity': '4',
                'coverImg': _png(),
                'photos': [_png('a.png'), _png('b.jpg')],
            },
            content_type='multipart/form-data',
        )
        assert response.status_code == 201
        data = response.json['data']
        assert data['price'][0]['price'] == 49.5
        assert len(data['photos']) == 2

        image = client.get(data['coverImg'])
        assert image.status_code == 200

    def test_update_price_and_toggle(self, client, owner_token, org, widget):
        headers = auth_headers(owner_token, org.id)

        priced = client.put(f'/api/v1/products/price/{widget.id}', headers=headers, json={'newPrice': 120})
        assert priced.status_code == 200
        assert [p['price'] for p in priced.json['data']['price']] == [120, 100]

        assert client.put(f'/api/v1/products/price/{widget.id}', headers=headers, json={'newPrice': 0}).status_code == 400

        status = client.put(f'/api/v1/products/status/{widget.id}', headers=headers)
        assert status.json['data']['status'] == 'Inactive'

        deleted = client.delete(f'/api/v1/products/{widget.id}', headers=headers)
        assert deleted.json['data']['isDeleted'] is True

    def test_other_org_product_is_not_found(self, client, db_session, owner_token, org, other_org, outsider):
        foreign = make_product(db_session, other_org, outsider, name='Foreign')
        response = client.put(
            f'/api/v1/products/price/{foreign.id}',
            headers=auth_headers(owner_token, org.id),
            json={'newPrice': 1},
        )
        assert response.status_code == 404
        db.session.expire_all()
        assert db.session.get(Product, foreign.id).current_price == 100

    def test_categories(self, client, owner_token, org, widget):
        response = client.get('/api/v1/products/categories', headers=auth_headers(owner_token, org.id))
        assert response.json['data'] == ['Tools']
