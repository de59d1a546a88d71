from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from banksync.main import app
from banksync.database import get_db
from banksync.app.dependencies import get_sync_service
from banksync.app.csv_import import CsvFormatError
from banksync.app.ledger import LedgerApiError
from banksync.app.models import SyncLog
from banksync.app.schemas import CsvImportResult, SyncResult, SyncStatus, SyncType

AUTH = ("admin", "hunter2")
STATEMENT = "Posteringsdato;Beskrivelse;Beløp\n2024-03-03;REMA 1000;-245,50\n"
FILES = {"csv": ("statement.csv", STATEMENT.encode("utf-8"))}


class StubService:
    def __init__(self, sync_error=None, import_result=None, import_error=None):
        self.sync_error = sync_error
        self.import_result = import_result or CsvImportResult()
        self.import_error = import_error
        self.sync_calls = 0
        self.imported = []

    async def sync(self):
        self.sync_calls += 1
        if self.sync_error:
            raise self.sync_error
        return SyncResult(status=SyncStatus.SUCCESS)

    async def import_csv(self, content):
        self.imported.append(content)
        if self.import_error:
            raise self.import_error
        return self.import_result


@pytest.fixture
def service():
    return StubService()


@pytest.fixture
def client(service, db_session):
    app.dependency_overrides[get_sync_service] = lambda: service
    app.dependency_overrides[get_db] = lambda: db_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestSyncEndpoint:
    def test_get_triggers_sync(self, client, service):
        response = client.get("/api/sync")

        assert response.status_code == 200
        assert response.text == "Successfully synced!"
        assert service.sync_calls == 1

    def test_post_triggers_sync(self, client, service):
        assert client.post("/api/sync").status_code == 200
        assert service.sync_calls == 1

    def test_failure_returns_500(self, client, service):
        service.sync_error = LedgerApiError("YNAB API error: 500")

        response = client.get("/api/sync")

        assert response.status_code == 500
        assert response.text == "Sync failed: YNAB API error: 500"


class TestSyncLogs:
    def test_lists_newest_first(self, client, db_session):
        for day in (1, 3, 2):
            db_session.add(SyncLog(
                sync_type=SyncType.BANK_SYNC,
                sync_status=SyncStatus.SUCCESS,
                started_at=datetime(2024, 12, day, 6, 0)
            ))
        db_session.commit()

        response = client.get("/api/sync/logs", params={"limit": 2})

        assert response.status_code == 200
        started = [entry["started_at"] for entry in response.json()]
        assert started == ["2024-12-03T06:00:00", "2024-12-02T06:00:00"]


class TestUploadCsv:
    def test_requires_credentials(self, client, service):
        response = client.post("/api/upload-csv", files=FILES)

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == 'Basic realm="Secure Area"'
        assert response.text == "Authentication required"
        assert service.imported == []

    def test_rejects_wrong_password(self, client, service):
        response = client.post(
            "/api/upload-csv",
            auth=("admin", "wrong"),
            files=FILES
        )

        assert response.status_code == 401
        assert response.text == "Invalid credentials"
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["WWW-Authenticate"] == 'Basic realm="Secure Area"'
        assert service.imported == []

    def test_missing_file(self, client):
        response = client.post("/api/upload-csv", auth=AUTH)

        assert response.status_code == 400
        assert response.text == "No CSV file provided"

    def test_imports_file(self, client, service):
        service.import_result = CsvImportResult(rows=1, imported=1)

        response = client.post("/api/upload-csv", auth=AUTH, files=FILES)

        assert response.status_code == 200
        assert response.text == "Successfully imported 1 transactions"
        assert service.imported == [STATEMENT]

    def test_byte_order_mark_is_stripped(self, client, service):
        client.post(
            "/api/upload-csv",
            auth=AUTH,
            files={"csv": ("statement.csv", "\ufeff".encode("utf-8") + STATEMENT.encode("utf-8"))}
        )

        assert service.imported == [STATEMENT]

    def test_nothing_to_import(self, client, service):
        response = client.post("/api/upload-csv", auth=AUTH, files=FILES)

        assert response.status_code == 200
        assert response.text == "No new transactions to import"

    def test_not_utf8(self, client):
        response = client.post(
            "/api/upload-csv",
            auth=AUTH,
            files={"csv": ("statement.csv", STATEMENT.encode("latin-1"))}
        )

        assert response.status_code == 400

    def test_bad_header(self, client, service):
        service.import_error = CsvFormatError("CSV is missing required column(s): amount")

        response = client.post("/api/upload-csv", auth=AUTH, files={"csv": ("statement.csv", b"a;b\n")})

        assert response.status_code == 400
        assert response.text.startswith("Error parsing CSV:")

    def test_ledger_failure(self, client, service):
        service.import_error = LedgerApiError("YNAB API error: 502")

        response = client.post("/api/upload-csv", auth=AUTH, files=FILES)

        assert response.status_code == 500
        assert response.text == "Error processing CSV file"


def test_health(client):
    response = client.get("/api/health")
    assert response.json() == {"status": "healthy"}
