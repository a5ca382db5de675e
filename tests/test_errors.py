"""Tests for error formatting."""

from dns_aws_auth.errors import ConfigConstructionError, RoleAssumptionError


def test_message_includes_suggestion_and_details():
    error = ConfigConstructionError("Profile 'x' not found", "Add the profile", details="Credentials file: /tmp/c")

    assert str(error) == "Profile 'x' not found\n\nAdd the profile\n\nCredentials file: /tmp/c"
    assert error.message == "Profile 'x' not found"


def test_format_for_console():
    output = ConfigConstructionError("Profile 'x' not found", "Add the profile").format()

    assert output.startswith("❌ Configuration Error: Profile 'x' not found")
    assert "💡 Add the profile" in output


def test_role_assumption_error_carries_role():
    error = RoleAssumptionError("denied", role_arn="arn:aws:iam::123456789012:role/role1")

    assert error.role_arn == "arn:aws:iam::123456789012:role/role1"
    assert error.format().startswith("❌ Role Assumption Error: denied")
