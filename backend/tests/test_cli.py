from payables.models import User
from payables.services.custody_service import get_balance


def test_system_init_creates_admin_once(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "PASS Created administrator: admin" in result.output

    result = runner.invoke(args=["system", "init"])
    assert "PASS Using existing administrator" in result.output
    assert db_session.query(User).filter_by(role="admin").count() == 1


def test_custody_credit_and_recover(app, db_session, admin_user, employee):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["custody", "credit", "sara", "500.00", "--reason", "Weekly float"])
    assert result.exit_code == 0, result.output
    assert "PASS Recorded credit of 500.00 for sara" in result.output

    result = runner.invoke(args=["custody", "credit", "--reason", "Returned", "sara", "--", "-120.00"])
    assert result.exit_code == 0, result.output
    assert "Balance: 380.00" in result.output

    assert get_balance(employee.id) == 38000

    result = runner.invoke(args=["custody", "balance", "sara"])
    assert result.output.startswith("sara: 380.00 (as of ")


def test_custody_credit_rejects_zero(app, db_session, admin_user, employee):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["custody", "credit", "sara", "0"])
    assert result.exit_code != 0
    assert get_balance(employee.id) == 0


def test_unknown_user(app, db_session, admin_user):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["custody", "balance", "nobody"])
    assert result.exit_code != 0
    assert "User 'nobody' not found" in result.output
