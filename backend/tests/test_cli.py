# Overview: Pytest coverage for the Flask CLI command groups.

from conftest import make_user
from orderdesk.extensions import db
from orderdesk.models import Membership, Organization, User


class TestSystemInit:
    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=['system', 'init', '--org', 'Demo Shop', '--slug', 'demo'])
        assert first.exit_code == 0, first.output
        assert 'Created user: admin' in first.output
        assert 'Created organization: Demo Shop' in first.output

        second = runner.invoke(args=['system', 'init', '--slug', 'demo'])
        assert second.exit_code == 0, second.output
        assert 'Using existing user: admin' in second.output
        assert 'Using existing organization' in second.output

        db.session.expire_all()
        assert db.session.query(User).filter_by(username='admin').count() == 1
        org = db.session.query(Organization).filter_by(slug='demo').one()
        assert db.session.query(Membership).filter_by(organization_id=org.id, role='Owner').count() == 1


class TestOrgAndUserCommands:
    def test_create_org_for_existing_user(self, app, db_session):
        make_user(db_session, 'founder')
        runner = app.test_cli_runner()

        result = runner.invoke(args=['orgs', 'create', '--name', 'Acme', '--slug', 'acme', '--owner', 'Founder'])
        assert 'PASS Created organization: Acme' in result.output

        listed = runner.invoke(args=['orgs', 'list'])
        assert 'acme' in listed.output

    def test_create_org_unknown_owner(self, app, db_session):
        result = app.test_cli_runner().invoke(args=['orgs', 'create', '--name', 'X', '--slug', 'x', '--owner', 'ghost'])
        assert "FAIL User 'ghost' not found" in result.output

    def test_create_user_rejects_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            'users', 'create', '--username', 'weak', '--email', 'weak@example.com', '--password', 'short',
        ])
        assert result.output.startswith('FAIL')

    def test_list_users_shows_memberships(self, app, db_session, owner, org):
        result = app.test_cli_runner().invoke(args=['users', 'list'])
        assert 'owner' in result.output
        assert f'{org.id}:Owner' in result.output

    def test_cleanup_sessions(self, app, db_session):
        result = app.test_cli_runner().invoke(args=['maintenance', 'cleanup-sessions'])
        assert 'Deleted 0 expired/revoked sessions.' in result.output
