"""
AccountService and CatalogService: the collaborators that seed actors and
stock for the reservation core.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.db.engine import session_scope
from stock_kernel.domain.access_policy import ActorRole
from stock_kernel.domain.dtos import MAX_QUANTITY
from stock_kernel.exceptions import (
    AccountNotFoundError,
    ForbiddenError,
    InvalidAccountError,
    InvalidProductError,
    ProductNotFoundError,
    UnauthenticatedError,
)
from stock_kernel.services.catalog_service import CatalogService
from stock_kernel.services.identity_service import (
    AccountService,
    Principal,
    RoleDirectory,
    SqlRoleDirectory,
    StaticTokenVerifier,
    TokenVerifier,
)


class TestAccountService:

    def test_register_normalizes_email(self, session_factory, deterministic_clock):
        with session_scope(session_factory) as s:
            account = AccountService(s, deterministic_clock).register(
                "  Trader@Example.COM ", "importer", display_name="Trader"
            )

        assert account.email == "trader@example.com"
        assert account.role is ActorRole.IMPORTER
        assert account.created_at == deterministic_clock.now()

    def test_register_is_idempotent_on_email(self, session_factory, importer):
        with session_scope(session_factory) as s:
            again = AccountService(s).register("importer@example.com", "exporter")

        assert again.id == importer.id
        assert again.role is ActorRole.IMPORTER

    def test_register_uses_given_account_id(self, session_factory):
        actor_id = uuid4()
        with session_scope(session_factory) as s:
            account = AccountService(s).register("new@example.com", ActorRole.EXPORTER, account_id=actor_id)

        assert account.id == actor_id

    @pytest.mark.parametrize(
        "email, role",
        [("no-at-sign", "importer"), ("ok@example.com", "broker"), ("", "exporter")],
    )
    def test_invalid_registration_rejected(self, session_factory, email, role):
        with pytest.raises(InvalidAccountError):
            with session_scope(session_factory) as s:
                AccountService(s).register(email, role)

    def test_get_by_id_unknown(self, session, db_engine):
        with pytest.raises(AccountNotFoundError):
            AccountService(session).get_by_id(uuid4())


class TestRoleDirectory:

    def test_role_lookup(self, session_factory, exporter, importer):
        directory = SqlRoleDirectory(session_factory)

        assert isinstance(directory, RoleDirectory)
        assert directory.role_of(exporter.id) is ActorRole.EXPORTER
        assert directory.role_of(importer.id) is ActorRole.IMPORTER

    def test_unknown_actor(self, session_factory):
        with pytest.raises(AccountNotFoundError):
            SqlRoleDirectory(session_factory).role_of(uuid4())


class TestStaticTokenVerifier:

    def test_issued_token_verifies(self):
        verifier = StaticTokenVerifier()
        principal = Principal(actor_id=uuid4(), email="a@example.com")
        token = verifier.issue(principal)

        assert isinstance(verifier, TokenVerifier)
        assert verifier.verify_token(token) == principal

    def test_revoked_token_rejected(self):
        verifier = StaticTokenVerifier()
        token = verifier.issue(Principal(actor_id=uuid4(), email="a@example.com"))
        verifier.revoke(token)

        with pytest.raises(UnauthenticatedError):
            verifier.verify_token(token)

    @pytest.mark.parametrize("token", ["", "not-a-token"])
    def test_missing_or_unknown_token(self, token):
        with pytest.raises(UnauthenticatedError):
            StaticTokenVerifier().verify_token(token)


class TestCatalogService:

    def test_register_product_seeds_stock(self, make_product, exporter):
        product = make_product(quantity=12)

        assert product.owner_id == exporter.id
        assert product.initial_quantity == 12
        assert product.available_quantity == 12
        assert product.price == Decimal("12.50")
        assert product.rating == Decimal("4.5")

    def test_zero_quantity_allowed(self, make_product):
        assert make_product(quantity=0).available_quantity == 0

    def test_importer_may_not_list(self, session_factory, importer):
        with pytest.raises(ForbiddenError):
            with session_scope(session_factory) as s:
                CatalogService(s).register_product(importer.id, "Tea", 5, "3.00", "India")

    def test_unknown_owner(self, session_factory, db_engine):
        with pytest.raises(AccountNotFoundError):
            with session_scope(session_factory) as s:
                CatalogService(s).register_product(uuid4(), "Tea", 5, "3.00", "India")

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"quantity": -1}, "quantity"),
            ({"quantity": True}, "quantity"),
            ({"quantity": 2.5}, "quantity"),
            ({"quantity": MAX_QUANTITY + 1}, "quantity"),
            ({"name": "  "}, "name"),
            ({"origin_country": ""}, "origin_country"),
            ({"price": "0"}, "price"),
            ({"price": "cheap"}, "price"),
            ({"price": "NaN"}, "price"),
            ({"rating": "5.5"}, "rating"),
        ],
    )
    def test_invalid_listing_rejected(self, session_factory, exporter, overrides, field):
        listing = {
            "name": "Tea",
            "quantity": 5,
            "price": "3.00",
            "origin_country": "India",
            "rating": None,
        }
        listing.update(overrides)

        with pytest.raises(InvalidProductError) as exc_info:
            with session_scope(session_factory) as s:
                CatalogService(s).register_product(exporter.id, **listing)

        assert exc_info.value.field == field

    def test_get_unknown_product(self, session, db_engine):
        with pytest.raises(ProductNotFoundError):
            CatalogService(session).get_product(uuid4())
