"""Tests for the request handlers and response envelope."""

from datetime import date
from decimal import Decimal

import pytest

from contave.api import handlers
from contave.api.responses import error_response, pascal_case, paginated, to_json_value, to_payload
from contave.domain.auth import AuthService
from contave.domain.entities import PeriodStatus
from contave.domain.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    UnbalancedEntryError,
)


@pytest.fixture
def entry_payload(accounts):
    def _entry_payload(debit="100.00", credit="100.00", **extra):
        return {
            "EntryDate": "2024-02-18",
            "Description": "Pago de alquiler",
            "EntryType": "expense",
            "Lines": [
                {"AccountId": accounts["5101"], "Debit": debit},
                {"AccountId": accounts["1101"], "Credit": credit},
            ],
            **extra,
        }

    return _entry_payload


class TestResponses:
    """Tests for payload rendering."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("entry_number", "EntryNumber"),
            ("iva_amount", "IVAAmount"),
            ("is_igtf_applicable", "IsIGTFApplicable"),
            ("islr_retention_percentage", "ISLRRetentionPercentage"),
            ("rif", "RIF"),
            ("company_id", "CompanyId"),
        ],
    )
    def test_pascal_case(self, name, expected):
        assert pascal_case(name) == expected

    def test_json_values(self):
        assert to_json_value(Decimal("125500.00")) == "125500.00"
        assert to_json_value(date(2024, 2, 18)) == "2024-02-18"
        assert to_json_value(PeriodStatus.OPEN) == "OPEN"
        assert to_json_value(frozenset({"b:x", "a:y"})) == ["a:y", "b:x"]

    def test_to_payload_id_key(self, temp_db, company_id):
        body = to_payload(temp_db.get_company(company_id), id_key="CompanyId")

        assert body["CompanyId"] == company_id
        assert body["RIF"] == "J-12345678-9"
        assert body["IVAAliquot"] == "16.00"
        assert "Id" not in body

    def test_paginated(self):
        response = paginated([1, 2], total=41, page=2, page_size=20)

        assert response.body["TotalPages"] == 3
        assert response.body["Page"] == 2
        assert response.body["Total"] == 41

    @pytest.mark.parametrize(
        "error, status",
        [
            (UnauthenticatedError("x"), 401),
            (ForbiddenError("x"), 403),
            (NotFoundError("x"), 404),
            (ConflictError("x"), 400),
        ],
    )
    def test_status_mapping(self, error, status):
        response = error_response(error)

        assert response.status == status
        assert response.body == {"Success": False, "Message": "x"}

    def test_unbalanced_carries_totals(self):
        response = error_response(UnbalancedEntryError(Decimal("100.00"), Decimal("90.00")))

        assert response.status == 400
        assert response.body["Data"] == {"TotalDebit": "100.00", "TotalCredit": "90.00"}


class TestLogin:
    """Tests for the login handler."""

    def test_login(self, temp_db, settings, company_id):
        response = handlers.login(temp_db, None, {"Username": "admin", "Password": "s3cret"}, settings=settings)

        assert response.status == 200
        data = response.body["Data"]
        assert data["CurrentCompanyId"] == company_id
        assert data["Permissions"] == ["*:*"]
        caller = AuthService(temp_db, settings).verify_token(data["Token"])
        assert caller.company_id == company_id

    def test_wrong_password(self, temp_db, settings, company_id):
        response = handlers.login(temp_db, None, {"Username": "admin", "Password": "x"}, settings=settings)

        assert response.status == 401
        assert response.body["Message"] == "Incorrect password"

    def test_missing_fields(self, temp_db, settings):
        response = handlers.login(temp_db, None, {"Username": "admin"}, settings=settings)

        assert response.status == 400
        assert response.body["Success"] is False


class TestJournalHandlers:
    """Tests for the journal handlers."""

    def test_create_entry(self, temp_db, admin, entry_payload):
        response = handlers.create_journal_entry(temp_db, admin, entry_payload())

        assert response.status == 200
        assert response.body["Data"]["EntryNumber"] == "000001"
        assert response.body["Message"] == "Entry 000001 created"

    def test_create_unbalanced(self, temp_db, admin, entry_payload):
        response = handlers.create_journal_entry(temp_db, admin, entry_payload(credit="90.00"))

        assert response.status == 400
        assert response.body["Data"] == {"TotalDebit": "100.00", "TotalCredit": "90.00"}

    def test_create_without_caller(self, temp_db, entry_payload):
        response = handlers.create_journal_entry(temp_db, None, entry_payload())

        assert response.status == 401

    def test_create_bad_amount(self, temp_db, admin, entry_payload):
        response = handlers.create_journal_entry(temp_db, admin, entry_payload(debit="cien"))

        assert response.status == 400
        assert "Debit" in response.body["Message"]

    def test_create_bad_enum(self, temp_db, admin, entry_payload):
        response = handlers.create_journal_entry(temp_db, admin, entry_payload(EntryType="weekly"))

        assert response.status == 400
        assert "EntryType must be one of" in response.body["Message"]

    def test_settings_currency_applies(self, temp_db, admin, settings, entry_payload):
        from dataclasses import replace

        usd = replace(settings, default_currency="USD")
        response = handlers.create_journal_entry(temp_db, admin, entry_payload(), settings=usd)

        entry = handlers.get_journal_entry(temp_db, admin, {"EntryId": response.body["Data"]["EntryId"]})
        assert entry.body["Data"]["Currency"] == "USD"

    def test_get_entry_payload(self, temp_db, admin, entry_payload):
        created = handlers.create_journal_entry(temp_db, admin, entry_payload())

        response = handlers.get_journal_entry(temp_db, admin, {"EntryId": created.body["Data"]["EntryId"]})

        data = response.body["Data"]
        assert data["EntryType"] == "EXPENSE"
        assert data["Status"] == "DRAFT"
        assert data["TotalDebit"] == "100.00"
        assert data["EntryDate"] == "2024-02-18"
        assert [line["LineNumber"] for line in data["Lines"]] == [1, 2]
        assert "LineId" in data["Lines"][0]

    def test_get_missing_entry(self, temp_db, admin):
        assert handlers.get_journal_entry(temp_db, admin, {"EntryId": 999}).status == 404

    def test_forbidden(self, temp_db, clerk, entry_payload):
        created = handlers.create_journal_entry(temp_db, clerk, entry_payload())
        assert created.status == 200

        response = handlers.approve_journal_entry(temp_db, clerk, {"EntryId": created.body["Data"]["EntryId"]})

        assert response.status == 403

    def test_approve_annul_reverse(self, temp_db, admin, entry_payload):
        entry_id = handlers.create_journal_entry(temp_db, admin, entry_payload()).body["Data"]["EntryId"]

        assert handlers.approve_journal_entry(temp_db, admin, {"EntryId": entry_id}).status == 200
        assert handlers.annul_journal_entry(temp_db, admin, {"EntryId": entry_id}).status == 400
        assert handlers.annul_journal_entry(temp_db, admin, {"EntryId": entry_id, "Reason": "duplicado"}).status == 200

        reversal = handlers.reverse_journal_entry(temp_db, admin, {"EntryId": entry_id})
        assert reversal.body["Data"]["EntryNumber"] == "000001-R"

    def test_list_pagination(self, temp_db, admin, entry_payload):
        for _ in range(3):
            handlers.create_journal_entry(temp_db, admin, entry_payload())

        response = handlers.list_journal_entries(temp_db, admin, {"Page": 2, "PageSize": 2})

        assert response.body["Total"] == 3
        assert response.body["TotalPages"] == 2
        assert len(response.body["Data"]) == 1
        assert "Lines" not in response.body["Data"][0]

    @pytest.mark.parametrize(
        "page, page_size, expected",
        [(0, 0, (1, 20)), (-3, 5, (1, 5)), (1, 1000, (1, 200)), (None, None, (1, 20))],
    )
    def test_page_bounds(self, temp_db, admin, page, page_size, expected):
        payload = {"Page": page, "PageSize": page_size}

        response = handlers.list_journal_entries(temp_db, admin, payload)

        assert (response.body["Page"], response.body["PageSize"]) == expected

    def test_list_filters(self, temp_db, admin, entry_payload):
        handlers.create_journal_entry(temp_db, admin, entry_payload())
        handlers.create_journal_entry(temp_db, admin, entry_payload(EntryDate="2024-03-02"))

        response = handlers.list_journal_entries(
            temp_db, admin, {"DateFrom": "2024-03-01", "DateTo": "2024-03-31", "Type": "EXPENSE"}
        )

        assert [e["EntryDate"] for e in response.body["Data"]] == ["2024-03-02"]

    def test_unexpected_error(self, temp_db, admin, monkeypatch):
        def boom(self, entry_id):
            raise RuntimeError("database went away")

        monkeypatch.setattr(handlers.JournalService, "get_entry", boom)

        response = handlers.get_journal_entry(temp_db, admin, {"EntryId": 1})

        assert response.status == 500
        assert response.body == {"Success": False, "Message": "Unexpected error"}


class TestMasterDataHandlers:
    """Tests for companies, accounts, third parties and periods."""

    def test_create_company(self, temp_db, bootstrap_caller):
        response = handlers.create_company(
            temp_db,
            bootstrap_caller,
            {
                "CompanyCode": "ACME",
                "LegalName": "Acme C.A.",
                "RIF": "J-12345678-9",
                "FiscalAddress": "Caracas",
                "IGTFAliquot": "2.00",
            },
        )

        company_id = response.body["Data"]["CompanyId"]
        assert temp_db.get_company(company_id).igtf_aliquot == Decimal("2.00")
        assert len(temp_db.list_periods(company_id)) == 12

    def test_list_companies(self, temp_db, admin, company_id):
        response = handlers.list_companies(temp_db, admin)

        assert [c["CompanyId"] for c in response.body["Data"]] == [company_id]

    def test_account_crud(self, temp_db, admin, accounts):
        created = handlers.create_account(
            temp_db,
            admin,
            {
                "AccountCode": "1103",
                "AccountName": "Inversiones",
                "Nature": "debit",
                "AccountType": "ASSET",
                "ParentAccountId": accounts["11"],
                "RequiresThirdParty": "yes",
            },
        )
        account_id = created.body["Data"]["AccountId"]

        handlers.update_account(temp_db, admin, {"AccountId": account_id, "AccountName": "Inversiones temporales"})
        listed = handlers.list_accounts(temp_db, admin, {})
        row = next(a for a in listed.body["Data"] if a["AccountId"] == account_id)
        assert row["Name"] == "Inversiones temporales"
        assert row["Level"] == 3
        assert row["RequiresThirdParty"] is True

        assert handlers.delete_account(temp_db, admin, {"AccountId": account_id}).status == 200
        listed = handlers.list_accounts(temp_db, admin, {})
        assert account_id not in [a["AccountId"] for a in listed.body["Data"]]

    def test_account_missing_id(self, temp_db, admin):
        response = handlers.update_account(temp_db, admin, {"AccountName": "X"})

        assert response.status == 400
        assert response.body["Message"] == "AccountId is required"

    def test_third_party_crud(self, temp_db, admin):
        created = handlers.create_third_party(
            temp_db,
            admin,
            {"ThirdPartyType": "SUPPLIER", "RIF": "j-30000000-1", "LegalName": "Proveedora Andina"},
        )
        third_party_id = created.body["Data"]["ThirdPartyId"]

        handlers.update_third_party(temp_db, admin, {"ThirdPartyId": third_party_id, "Phone": "0212-5550000"})
        listed = handlers.list_third_parties(temp_db, admin, {"Search": "andina"})

        assert listed.body["Data"][0]["RIF"] == "J-30000000-1"
        assert listed.body["Data"][0]["Phone"] == "0212-5550000"
        assert handlers.delete_third_party(temp_db, admin, {"ThirdPartyId": third_party_id}).status == 200

    def test_periods(self, temp_db, admin, period_for):
        january = period_for(2024, 1)

        closed = handlers.close_period(temp_db, admin, {"PeriodId": january.id, "Notes": "cierre"})
        reopened = handlers.reopen_period(temp_db, admin, {"PeriodId": january.id})
        listed = handlers.list_periods(temp_db, admin, {"Status": "CLOSED"})

        assert closed.status == 200
        assert reopened.status == 400
        assert [p["PeriodId"] for p in listed.body["Data"]] == [january.id]

    def test_create_fiscal_year(self, temp_db, admin):
        response = handlers.create_fiscal_year(temp_db, admin, {"Year": 2025})

        assert len(response.body["Data"]["PeriodIds"]) == 12
        assert handlers.create_fiscal_year(temp_db, admin, {"Year": 2025}).status == 400

    def test_company_falls_back_to_caller(self, temp_db, bootstrap_caller):
        response = handlers.list_accounts(temp_db, bootstrap_caller, {})

        assert response.status == 400
        assert response.body["Message"] == "CompanyId is required"


class TestAuthorizationBeforePayload:
    """Identity and permission are checked before the payload is read."""

    @pytest.mark.parametrize(
        "handler_name, payload",
        [
            ("approve_journal_entry", {}),
            ("annul_journal_entry", {"EntryId": "abc"}),
            ("reverse_journal_entry", {}),
            ("create_journal_entry", {"Lines": "not-a-list"}),
            ("create_journal_entry", {"Lines": [{"AccountId": 1, "Debit": "cien"}]}),
            ("update_account", {"Nature": "sideways"}),
            ("delete_third_party", {}),
            ("close_period", {"PeriodId": "x"}),
            ("create_fiscal_year", {}),
            ("list_journal_entries", {"PageSize": "many"}),
            ("get_journal_entry", {}),
            ("list_users", {"ActiveOnly": "maybe"}),
            ("update_user", {}),
        ],
    )
    def test_anonymous_gets_401(self, temp_db, handler_name, payload):
        response = getattr(handlers, handler_name)(temp_db, None, payload)

        assert response.status == 401

    @pytest.mark.parametrize(
        "handler_name, payload",
        [
            ("approve_journal_entry", {}),
            ("update_account", {"Nature": "sideways"}),
            ("create_company", {"IVAAliquot": "dieciseis"}),
            ("reopen_period", {}),
            ("create_user", {}),
            ("delete_user", {}),
        ],
    )
    def test_missing_permission_gets_403(self, temp_db, clerk, handler_name, payload):
        response = getattr(handlers, handler_name)(temp_db, clerk, payload)

        assert response.status == 403

    def test_permitted_caller_still_gets_400(self, temp_db, admin):
        response = handlers.approve_journal_entry(temp_db, admin, {})

        assert response.status == 400
        assert response.body["Message"] == "EntryId is required"


class TestUserHandlers:
    """Tests for user administration handlers."""

    @pytest.fixture
    def user_payload(self, company_id):
        return {
            "Username": "maria",
            "Email": "maria@example.com",
            "Password": "clave-maria",
            "FirstName": "María",
            "LastName": "Pérez",
            "CompanyId": company_id,
            "RoleName": "admin",
        }

    def test_create_and_list(self, temp_db, admin, settings, user_payload):
        created = handlers.create_user(temp_db, admin, user_payload, settings=settings)

        assert created.status == 200
        listed = handlers.list_users(temp_db, admin, {})
        usernames = [u["Username"] for u in listed.body["Data"]]
        assert usernames == ["admin", "maria"]
        assert "PasswordHash" not in listed.body["Data"][0]

    def test_created_user_can_log_in(self, temp_db, admin, settings, user_payload, company_id):
        handlers.create_user(temp_db, admin, user_payload, settings=settings)

        response = handlers.login(
            temp_db, None, {"Username": "maria", "Password": "clave-maria"}, settings=settings
        )

        assert response.status == 200
        assert response.body["Data"]["CurrentCompanyId"] == company_id

    def test_duplicate_user(self, temp_db, admin, settings, user_payload):
        handlers.create_user(temp_db, admin, user_payload, settings=settings)

        response = handlers.create_user(temp_db, admin, user_payload, settings=settings)

        assert response.status == 400
        assert "already exists" in response.body["Message"]

    def test_update_and_block(self, temp_db, admin, settings, user_payload):
        user_id = handlers.create_user(temp_db, admin, user_payload, settings=settings).body["Data"]["UserId"]

        response = handlers.update_user(
            temp_db, admin, {"UserId": user_id, "IsBlocked": True, "Username": "ignored"}, settings=settings
        )

        assert response.status == 200
        user = temp_db.get_user(user_id)
        assert user.is_blocked is True
        assert user.username == "maria"
        login = handlers.login(temp_db, None, {"Username": "maria", "Password": "clave-maria"}, settings=settings)
        assert login.status == 401

    def test_delete_user(self, temp_db, admin, settings, user_payload):
        user_id = handlers.create_user(temp_db, admin, user_payload, settings=settings).body["Data"]["UserId"]

        assert handlers.delete_user(temp_db, admin, {"UserId": user_id}).status == 200
        assert temp_db.get_user(user_id).is_active is False

    def test_cannot_delete_self(self, temp_db, admin):
        response = handlers.delete_user(temp_db, admin, {"UserId": admin.user_id})

        assert response.status == 400

    def test_role_and_grant(self, temp_db, admin, settings, company_id):
        role = handlers.create_role(
            temp_db, admin, {"RoleName": "Contador", "Permissions": ["journal:create", "journal:approve"]}
        )
        assert role.status == 200

        payload = {
            "Username": "luis",
            "Email": "luis@example.com",
            "Password": "clave-luis",
            "FirstName": "Luis",
            "LastName": "Rojas",
        }
        user_id = handlers.create_user(temp_db, admin, payload, settings=settings).body["Data"]["UserId"]
        granted = handlers.grant_company_access(
            temp_db, admin, {"UserId": user_id, "CompanyId": company_id, "RoleName": "CONTADOR"}
        )
        assert granted.status == 200

        login = handlers.login(temp_db, None, {"Username": "luis", "Password": "clave-luis"}, settings=settings)
        assert login.body["Data"]["Permissions"] == ["journal:approve", "journal:create"]
