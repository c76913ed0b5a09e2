"""Flask CLI command tests."""

from invoicehub.models import Business, SessionToken, User


class TestSystemCommands:

    def test_init_creates_platform_account_once(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "init", "--username", "root", "--password", "Password123!"])
        assert "PASS Created platform account: root" in result.output
        assert db_session.query(User).filter_by(role="platform").count() == 1

        result = runner.invoke(args=["system", "init"])
        assert "PASS Using existing platform account: root" in result.output
        assert db_session.query(User).count() == 1

    def test_init_rejects_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "init", "--password", "weak"])
        assert "FAIL Password validation failed" in result.output
        assert db_session.query(User).count() == 0


class TestBusinessCommands:

    def test_create_requires_platform_account(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["businesses", "create", "--name", "Corner Store"])
        assert "FAIL No platform account found" in result.output

    def test_create_and_list(self, app, db_session, platform_user):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["businesses", "create", "--name", "Corner Store", "--type", "franchise"])
        assert "PASS Created business: Corner Store" in result.output
        assert db_session.query(Business).filter_by(name="Corner Store").one().bid == 1

        result = runner.invoke(args=["businesses", "list"])
        assert "Corner Store" in result.output


class TestUserCommands:

    def test_create_business_user(self, app, db_session, business_a):
        result = app.test_cli_runner().invoke(args=[
            "users", "create", "--username", "clerk", "--password", "Password123!",
            "--role", "user", "--business-id", str(business_a.id),
        ])
        assert "PASS Created user: clerk" in result.output
        assert db_session.query(User).filter_by(username="clerk").one().business_id == business_a.id

    def test_list_filters_by_business(self, app, db_session, admin_a, admin_b, business_a):
        result = app.test_cli_runner().invoke(args=["users", "list", "--business-id", str(business_a.id)])
        assert "admin_a" in result.output
        assert "admin_b" not in result.output


class TestMaintenanceCommands:

    def test_cleanup_sessions(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions", "--older-than-days", "30"])
        assert "Deleted 0 sessions older than 30 days." in result.output
        assert db_session.query(SessionToken).count() == 0
