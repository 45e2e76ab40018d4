from decimal import Decimal

import pytest

from bukukas.app import create_app

from conftest import FakeStore, cash_deposit, debt, expense, sale

TOKEN = {"Authorization": "Bearer rahasia"}
MAY = {"mulai": "2024-05-01", "akhir": "2024-05-31"}


@pytest.fixture
def store():
    return FakeStore(
        deposits=[cash_deposit(100000)],
        expenses=[expense(20000)],
        transactions=[sale(15000, 10000)],
        debts=[debt(30000, debt_id="h-1")],
    )


@pytest.fixture
def client(store):
    app = create_app(store=store, authenticate=lambda token: "user-1" if token == "rahasia" else None)
    app.config["TESTING"] = True
    return app.test_client()


def test_requests_without_token_are_rejected(client):
    assert client.get("/dashboard").status_code == 401
    assert client.get("/dashboard", headers={"Authorization": "Bearer salah"}).status_code == 401


def test_dashboard_json(client):
    response = client.get("/dashboard", query_string=MAY, headers=TOKEN)

    assert response.status_code == 200
    body = response.get_json()
    assert body["period"] == {"start": "2024-05-01T00:00:00", "end": "2024-05-31T23:59:59.999000"}
    assert Decimal(str(body["net_profit"])) == Decimal("-15000")
    assert Decimal(str(body["balance"]["cash"])) == Decimal("70000")
    assert body["complete"] is True


def test_specific_month_timeframe(client):
    response = client.get(
        "/dashboard",
        query_string={"timeframe": "pilih-bulan", "tahun": "2024", "bulan": "4"},
        headers=TOKEN,
    )

    assert response.status_code == 200
    assert Decimal(str(response.get_json()["total_revenue"])) == 0


def test_invalid_range_is_bad_request(client):
    response = client.get("/dashboard", query_string={"mulai": "2024-05-31", "akhir": "2024-05-01"}, headers=TOKEN)

    assert response.status_code == 400


def test_failed_read_is_service_unavailable(client, store):
    store.fail_reads = {"pengeluaran"}

    response = client.get("/dashboard", query_string=MAY, headers=TOKEN)

    assert response.status_code == 503
    assert response.get_json()["failed"] == ["expenses"]


def test_profit_and_loss_document(client):
    response = client.get("/laporan/laba-rugi", query_string=MAY, headers=TOKEN)

    body = response.get_json()
    assert body["title"] == "Laporan Laba Rugi"
    assert body["sections"][-1]["key"] == "net_profit"


def test_cash_flow_and_summary(client):
    flow = client.get("/laporan/arus-kas", query_string=MAY, headers=TOKEN).get_json()
    summary = client.get("/laporan/ringkasan", query_string={**MAY, "jenis": "harian"}, headers=TOKEN).get_json()

    assert flow["title"] == "Laporan Arus Kas"
    assert [row["start"] for row in summary["rows"]] == ["2024-05-02T00:00:00", "2024-05-03T00:00:00"]


def test_transfer_creates_two_rows(client, store):
    response = client.post(
        "/modal/transfer",
        json={"sumber_asal": "cash", "sumber_tujuan": "gopay", "jumlah": 25000, "biaya_admin": 2500,
              "tanggal": "2024-05-05"},
        headers=TOKEN,
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["outgoing"]["jumlah"] == -27500
    assert body["incoming"]["jumlah"] == 25000
    assert len(store.deposits) == 3


def test_partial_transfer_failure_reports_saved_leg(client, store):
    store.fail_deposit_inserts = {2}

    response = client.post(
        "/modal/transfer",
        json={"sumber_asal": "cash", "sumber_tujuan": "seabank", "jumlah": 10000},
        headers=TOKEN,
    )

    assert response.status_code == 502
    transfer = response.get_json()["transfer"]
    assert transfer["failed_leg"] == "destination"
    assert transfer["completed_leg_id"] == store.deposits[-1].id
    assert transfer["pending_leg"]["sumber_dana"] == "seabank"


def test_invalid_expense_is_bad_request(client):
    response = client.post("/pengeluaran", json={"jumlah": 5000, "kategori": "usaha", "sumber_dana": "cash"}, headers=TOKEN)

    assert response.status_code == 400
    assert response.get_json()["field"] == "keterangan"


def test_debt_status_change(client, store):
    response = client.post("/hutang/h-1/status", json={"status": "lunas"}, headers=TOKEN)

    assert response.status_code == 200
    assert response.get_json()["status"] == "lunas"
    assert store.debts[0].paid_date is not None


def test_debts_page_lists_tab(client):
    body = client.get("/hutang", query_string={"tab": "belum_lunas"}, headers=TOKEN).get_json()

    assert [row["id"] for row in body["debts"]] == ["h-1"]


def test_delete_unknown_table_is_not_found(client):
    assert client.delete("/pelanggan/x", headers=TOKEN).status_code == 404


def test_delete_row(client, store):
    response = client.delete("/hutang/h-1", headers=TOKEN)

    assert response.status_code == 200
    assert store.debts == []


def test_non_finite_amount_is_bad_request(client):
    response = client.post(
        "/pengeluaran",
        json={"jumlah": "NaN", "kategori": "usaha", "sumber_dana": "cash", "keterangan": "Listrik"},
        headers=TOKEN,
    )

    assert response.status_code == 400
    assert response.get_json()["field"] == "jumlah"


def test_year_out_of_range_is_bad_request(client):
    response = client.get(
        "/dashboard",
        query_string={"timeframe": "pilih-bulan", "tahun": "0", "bulan": "5"},
        headers=TOKEN,
    )

    assert response.status_code == 400
