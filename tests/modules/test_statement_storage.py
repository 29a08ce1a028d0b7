"""Tests for statement storage and signed URLs."""

from datetime import date
from urllib.parse import parse_qs, urlsplit
from uuid import uuid4

import pytest

from backoffice_config import StorageConfig
from backoffice_kernel.exceptions import (
    ConfigurationError,
    InvalidSignatureError,
    StatementNotFoundError,
)
from backoffice_modules.banking import LocalObjectStorage, ReconciliationService
from backoffice_modules.banking.storage import statement_key


@pytest.fixture
def storage(tmp_path, deterministic_clock):
    return LocalObjectStorage(tmp_path, "test-signing-key", clock=deterministic_clock)


class TestStatementKey:

    def test_scoped_by_company_and_account(self):
        company_id, account_id = uuid4(), uuid4()
        key = statement_key(company_id, account_id, "jan.pdf")

        company, account, name = key.split("/")
        assert company == str(company_id)
        assert account == str(account_id)
        assert name.endswith("-jan.pdf")

    def test_keys_are_unique(self):
        company_id, account_id = uuid4(), uuid4()
        assert statement_key(company_id, account_id, "a.pdf") != statement_key(
            company_id, account_id, "a.pdf",
        )

    def test_client_path_components_dropped(self):
        key = statement_key(uuid4(), uuid4(), "../../etc/passwd")
        assert ".." not in key
        assert key.endswith("-passwd")

    def test_windows_path_components_dropped(self):
        assert statement_key(uuid4(), uuid4(), r"C:\scans\feb.pdf").endswith("-feb.pdf")


class TestLocalObjectStorage:

    def test_upload_and_read(self, storage, tmp_path):
        storage.upload("c/b/x-jan.pdf", b"%PDF")

        assert storage.read("c/b/x-jan.pdf") == b"%PDF"
        assert (tmp_path / "c" / "b" / "x-jan.pdf").read_bytes() == b"%PDF"

    def test_read_missing(self, storage):
        with pytest.raises(StatementNotFoundError):
            storage.read("c/b/missing.pdf")

    def test_traversal_rejected(self, storage):
        with pytest.raises(StatementNotFoundError):
            storage.upload("../outside.pdf", b"x")

    def test_from_config(self, tmp_path):
        config = StorageConfig(root=str(tmp_path), signing_key="k", url_base="/files/")
        storage = LocalObjectStorage.from_config(config)

        assert storage.signed_url("a.pdf", 60).startswith("/files/a.pdf?")


class TestSignedUrls:

    def test_round_trip(self, storage):
        url = storage.signed_url("c/b/x-jan statement.pdf", 600)

        assert url.startswith("/statements/c/b/x-jan%20statement.pdf?")
        assert storage.verify_url(url) == "c/b/x-jan statement.pdf"

    def test_expiry_from_clock(self, storage, deterministic_clock):
        url = storage.signed_url("k.pdf", 600)

        expires = int(parse_qs(urlsplit(url).query)["expires"][0])
        assert expires == int(deterministic_clock.now().timestamp()) + 600

    def test_expired(self, storage, deterministic_clock):
        url = storage.signed_url("k.pdf", 600)
        deterministic_clock.advance(600)

        with pytest.raises(InvalidSignatureError) as exc_info:
            storage.verify_url(url)
        assert exc_info.value.reason == "expired"

    def test_tampered_key(self, storage):
        url = storage.signed_url("c/b/a.pdf", 600)

        with pytest.raises(InvalidSignatureError) as exc_info:
            storage.verify_url(url.replace("a.pdf", "b.pdf"))
        assert exc_info.value.reason == "signature mismatch"

    def test_other_signing_key(self, storage, tmp_path, deterministic_clock):
        other = LocalObjectStorage(tmp_path, "another-key", clock=deterministic_clock)

        with pytest.raises(InvalidSignatureError):
            other.verify_url(storage.signed_url("a.pdf", 600))

    def test_missing_parameters(self, storage):
        with pytest.raises(InvalidSignatureError):
            storage.verify_url("/statements/a.pdf?expires=123")

    def test_unknown_base(self, storage):
        with pytest.raises(InvalidSignatureError):
            storage.verify_url("/elsewhere/a.pdf?expires=1&signature=00")


class TestServiceStatementOperations:

    def test_attach_requires_storage(self, service, context, bank_account):
        ws = service.start(context, bank_account.id, date(2025, 1, 31))
        with pytest.raises(ConfigurationError):
            service.attach_statement(context, ws, "jan.pdf", b"data")

    def test_unknown_statement_url(self, session, deterministic_clock, storage, context):
        svc = ReconciliationService(session, clock=deterministic_clock, storage=storage)

        with pytest.raises(StatementNotFoundError):
            svc.statement_url(context, uuid4())
