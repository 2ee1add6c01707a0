"""
Employee resolution, authorization and permission table tests.
"""

import pytest

from portal.errors import (
    AuthenticationRequiredError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from portal.extensions import db
from portal.models import User
from portal.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    EmployeeRole,
    get_all_permission_codes,
    get_permission_definition,
    parse_role,
    role_has_permission,
    roles_with_permission,
    validate_permission_code,
)
from portal.services import employee_service


# =============================================================================
# PERMISSION TABLE
# =============================================================================


class TestPermissionTable:

    def test_every_granted_code_is_defined(self):
        for role, codes in DEFAULT_ROLE_PERMISSIONS.items():
            for code in codes:
                assert validate_permission_code(code), f"{role.value} grants unknown {code}"

    def test_incharge_holds_everything(self):
        assert DEFAULT_ROLE_PERMISSIONS[EmployeeRole.INCHARGE] == set(get_all_permission_codes())

    @pytest.mark.parametrize(
        "code,roles",
        [
            ("CONFIRM_ADDRESS", [EmployeeRole.CALLCENTER, EmployeeRole.INCHARGE]),
            ("MARK_PACKED", [EmployeeRole.PACKER, EmployeeRole.INCHARGE]),
            ("ASSIGN_DELIVERYMAN", [EmployeeRole.WAREHOUSE, EmployeeRole.INCHARGE]),
            ("COLLECT_CASH", [EmployeeRole.DELIVERYMAN, EmployeeRole.INCHARGE]),
            ("RECEIVE_CASH", [EmployeeRole.ACCOUNTS, EmployeeRole.INCHARGE]),
        ],
    )
    def test_operation_roles(self, code, roles):
        assert roles_with_permission(code) == roles

    def test_every_role_can_view_orders(self):
        assert roles_with_permission("VIEW_ORDERS") == list(EmployeeRole)

    def test_unknown_role_has_nothing(self):
        assert parse_role("admin") is None
        assert role_has_permission("admin", "VIEW_ORDERS") is False

    def test_definition_lookup(self):
        definition = get_permission_definition("SUBMIT_CASH")
        assert definition["code"] == "SUBMIT_CASH"
        assert definition["category"] == "CASH"
        assert get_permission_definition("NOPE") is None


# =============================================================================
# RESOLUTION / AUTHORIZATION
# =============================================================================


class TestResolveEmployee:

    def test_missing_identity(self):
        with pytest.raises(AuthenticationRequiredError):
            employee_service.resolve_employee(None)

    def test_unknown_identity(self, app):
        with pytest.raises(PermissionDeniedError):
            employee_service.resolve_employee("user_nobody")

    def test_customer_is_not_an_employee(self, app):
        db.session.add(User(identity_id="user_shopper", email="shopper@example.com"))
        db.session.commit()

        with pytest.raises(PermissionDeniedError):
            employee_service.resolve_employee("user_shopper")

    def test_inactive_employee(self, make_employee):
        ctx = make_employee("packer", status="inactive")

        with pytest.raises(PermissionDeniedError):
            employee_service.resolve_employee(ctx.identity_id)

    def test_active_employee(self, make_employee):
        ctx = make_employee("warehouse", first_name="Wren")

        resolved = employee_service.resolve_employee(ctx.identity_id)
        assert resolved.role == EmployeeRole.WAREHOUSE
        assert resolved.name == "Wren Staff"
        assert resolved.to_dict()["role"] == "warehouse"


class TestAuthorize:

    def test_role_change_applies_to_existing_context(self, make_employee):
        ctx = make_employee("callcenter")
        user = db.session.get(User, ctx.user_id)
        user.employee_role = "packer"
        db.session.commit()

        with pytest.raises(PermissionDeniedError):
            employee_service.authorize(ctx, "CONFIRM_ADDRESS")
        assert employee_service.authorize(ctx, "MARK_PACKED").role == EmployeeRole.PACKER

    def test_no_actor(self):
        with pytest.raises(AuthenticationRequiredError):
            employee_service.authorize(None, "VIEW_ORDERS")


class TestEmployeeStatus:

    def test_anonymous(self):
        assert employee_service.get_employee_status(None) == {"is_employee": False, "role": None}

    def test_customer(self, app):
        db.session.add(User(identity_id="user_shopper", email="shopper@example.com"))
        db.session.commit()
        assert employee_service.get_employee_status("user_shopper") == {"is_employee": False, "role": None}

    def test_active(self, make_employee):
        ctx = make_employee("accounts")
        assert employee_service.get_employee_status(ctx.identity_id) == {"is_employee": True, "role": "accounts"}

    def test_inactive_reports_role(self, make_employee):
        ctx = make_employee("packer", status="inactive")
        assert employee_service.get_employee_status(ctx.identity_id) == {"is_employee": False, "role": "packer"}


# =============================================================================
# LOOKUPS / MAINTENANCE
# =============================================================================


class TestLookups:

    def test_active_deliverymen_only(self, make_employee):
        first = make_employee("deliveryman", first_name="Dana")
        make_employee("deliveryman", status="inactive")
        make_employee("packer")
        second = make_employee("deliveryman", first_name="Ari")

        assert [u.id for u in employee_service.get_active_deliverymen()] == [second.user_id, first.user_id]

    def test_active_employee_role_mismatch(self, make_employee):
        packer = make_employee("packer")

        with pytest.raises(NotFoundError):
            employee_service.get_active_employee(packer.user_id, EmployeeRole.ACCOUNTS)


class TestMaintenance:

    def test_create_promotes_existing_user(self, app):
        db.session.add(User(identity_id="user_jo", email="jo@shop.test", first_name="Jo"))
        db.session.commit()

        user = employee_service.create_employee(identity_id="user_jo", email="jo@shop.test", role="packer")

        assert user.is_employee is True
        assert user.employee_role == "packer"
        assert user.employee_status == "active"
        assert user.first_name == "Jo"
        assert db.session.query(User).filter_by(identity_id="user_jo").count() == 1

    def test_create_rejects_unknown_role(self):
        with pytest.raises(ValidationError):
            employee_service.create_employee(identity_id="user_x", email="x@shop.test", role="manager")

    def test_set_status(self, make_employee):
        ctx = make_employee("deliveryman")

        user = employee_service.set_employee_status(ctx.identity_id, "inactive")
        assert user.employee_status == "inactive"

        with pytest.raises(ValidationError):
            employee_service.set_employee_status(ctx.identity_id, "suspended")
        with pytest.raises(NotFoundError):
            employee_service.set_employee_status("user_nobody", "active")

    def test_list_filters_by_role(self, make_employee):
        make_employee("packer")
        make_employee("accounts")

        assert [u.employee_role for u in employee_service.list_employees("packer")] == ["packer"]
        with pytest.raises(ValidationError):
            employee_service.list_employees("manager")


class TestCommands:

    def test_perms_list_for_role(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "accounts"])

        assert result.exit_code == 0
        assert "RECEIVE_CASH" in result.output
        assert "MARK_PACKED" not in result.output

    def test_perms_list_unknown_role(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "manager"])
        assert "FAIL" in result.output

    def test_employees_create(self, app):
        result = app.test_cli_runner().invoke(
            args=[
                "employees", "create",
                "--identity-id", "user_kim",
                "--email", "kim@shop.test",
                "--role", "warehouse",
                "--first-name", "Kim",
            ]
        )

        assert result.exit_code == 0
        assert "PASS" in result.output
        db.session.expire_all()
        assert db.session.query(User).filter_by(identity_id="user_kim", employee_role="warehouse").count() == 1
