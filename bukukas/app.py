import logging
from functools import lru_cache, wraps

from flask import Flask, current_app, g, jsonify, request

from bukukas import service
from bukukas.config import get_client, settings, validate_config
from bukukas.errors import (
    DataUnavailable,
    IncompleteAggregation,
    InvalidRange,
    LedgerWriteError,
    PartialTransferFailure,
    ValidationError,
)
from bukukas.ledger import record_transfer, set_debt_status
from bukukas.models import CapitalDeposit, DebtRecord, DebtStatus, Expense, SaleTransaction, local_now
from bukukas.periods import CustomRange, parse_timeframe
from bukukas.store import MODELS, LedgerStore

logger = logging.getLogger(__name__)


# ---------------- Autentikasi ----------------
@lru_cache(maxsize=1)
def _auth_client():
    return get_client()


def supabase_authenticate(token):
    """Token akses Supabase -> user_id (None kalau tidak valid)."""
    response = _auth_client().auth.get_user(token)
    if not response or not response.user:
        return None
    return response.user.id


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = request.headers.get("Authorization", "")
        token = header[7:].strip() if header.lower().startswith("bearer ") else ""
        if not token:
            return jsonify(error="Sesi tidak valid. Harap login ulang."), 401

        try:
            user_id = current_app.config["AUTHENTICATE"](token)
        except Exception as e:
            logger.warning("Token ditolak: %s", e)
            user_id = None

        if not user_id:
            return jsonify(error="Token tidak valid atau sudah kedaluwarsa."), 401
        g.user_id = user_id
        return f(*args, **kwargs)
    return decorated_function


# ---------------- Helper ----------------
def get_store():
    store = current_app.config.get("LEDGER_STORE")
    if store is None:
        store = current_app.config["LEDGER_STORE"] = LedgerStore()
    return store


def _timeframe(default="hari-ini"):
    """Periode dari query string: ?mulai=&akhir= atau ?timeframe=&tahun=&bulan=."""
    args = request.args
    if args.get("mulai") or args.get("akhir"):
        return CustomRange(args.get("mulai"), args.get("akhir"))
    return parse_timeframe(
        args.get("timeframe", default), year=args.get("tahun"), month=args.get("bulan")
    )


def _payload():
    return dict(request.get_json(silent=True) or {})


def _created(model, insert):
    payload = _payload()
    payload.pop("id", None)
    payload.setdefault(model.DATE_COLUMN, local_now().isoformat())
    entity = model.from_row(payload)
    saved = insert(g.user_id, entity)
    logger.info("Data %s baru disimpan (id=%s)", model.TABLE, saved.id)
    return jsonify(saved.to_row()), 201


# ---------------- Rute ----------------
def register_routes(app):
    @app.route("/dashboard")
    @login_required
    def dashboard_page():
        aggregation = service.dashboard(get_store(), g.user_id, _timeframe())
        return jsonify(aggregation.to_dict())

    @app.route("/laporan/laba-rugi")
    @login_required
    def laba_rugi_page():
        report = service.profit_and_loss(get_store(), g.user_id, _timeframe("bulan-ini"))
        return jsonify(report.to_document())

    @app.route("/laporan/arus-kas")
    @login_required
    def arus_kas_page():
        report = service.cash_flow(get_store(), g.user_id, _timeframe("bulan-ini"))
        return jsonify(report.to_document())

    @app.route("/laporan/ringkasan")
    @login_required
    def ringkasan_page():
        rows = service.periodic_summary(
            get_store(), g.user_id, _timeframe("bulan-ini"), request.args.get("jenis", "harian")
        )
        return jsonify(rows=[row.to_dict() for row in rows])

    @app.route("/hutang", methods=["GET"])
    @login_required
    def hutang_page():
        return jsonify(service.debts_overview(get_store(), g.user_id, request.args.get("tab", "semua")))

    @app.route("/hutang", methods=["POST"])
    @login_required
    def tambah_hutang():
        payload = _payload()
        payload.pop("id", None)
        payload["status"] = DebtStatus.UNPAID.value
        payload["tanggal_lunas"] = None
        payload.setdefault(DebtRecord.DATE_COLUMN, local_now().isoformat())
        saved = get_store().insert_debt(g.user_id, DebtRecord.from_row(payload))
        return jsonify(saved.to_row()), 201

    @app.route("/hutang/<debt_id>/status", methods=["POST"])
    @login_required
    def status_hutang(debt_id):
        debt = set_debt_status(get_store(), g.user_id, debt_id, _payload().get("status"))
        return jsonify(debt.to_row())

    @app.route("/modal", methods=["POST"])
    @login_required
    def tambah_modal():
        return _created(CapitalDeposit, get_store().insert_deposit)

    @app.route("/modal/transfer", methods=["POST"])
    @login_required
    def transfer_modal():
        payload = _payload()
        result = record_transfer(
            get_store(),
            g.user_id,
            origin=payload.get("sumber_asal"),
            destination=payload.get("sumber_tujuan"),
            amount=payload.get("jumlah"),
            fee=payload.get("biaya_admin"),
            date=payload.get("tanggal"),
            note=payload.get("keterangan"),
        )
        return jsonify(outgoing=result.outgoing.to_row(), incoming=result.incoming.to_row()), 201

    @app.route("/pengeluaran", methods=["POST"])
    @login_required
    def tambah_pengeluaran():
        return _created(Expense, get_store().insert_expense)

    @app.route("/transaksi", methods=["POST"])
    @login_required
    def tambah_transaksi():
        return _created(SaleTransaction, get_store().insert_transaction)

    @app.route("/<tabel>/<row_id>", methods=["DELETE"])
    @login_required
    def hapus_page(tabel, row_id):
        if tabel not in MODELS:
            return jsonify(error="Tipe data tidak valid."), 404
        get_store().delete(tabel, g.user_id, row_id)
        return jsonify(deleted=row_id)


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def validation_error(e):
        return jsonify(error=e.message, field=e.field), 400

    @app.errorhandler(InvalidRange)
    def invalid_range(e):
        return jsonify(error=str(e)), 400

    @app.errorhandler(DataUnavailable)
    def data_unavailable(e):
        return jsonify(error=str(e), failed=e.failed), 503

    @app.errorhandler(PartialTransferFailure)
    def partial_transfer(e):
        return jsonify(error=str(e), transfer=e.to_dict()), 502

    @app.errorhandler(LedgerWriteError)
    def write_failed(e):
        return jsonify(error=str(e)), 502

    @app.errorhandler(IncompleteAggregation)
    def incomplete(e):
        return jsonify(error=str(e)), 500


def create_app(store=None, authenticate=None):
    app = Flask(__name__)
    app.secret_key = settings.SECRET_KEY
    app.config["LEDGER_STORE"] = store
    app.config["AUTHENTICATE"] = authenticate or supabase_authenticate
    register_routes(app)
    register_error_handlers(app)
    return app


def main():
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    for problem in validate_config():
        logger.warning("Konfigurasi: %s", problem)
    create_app().run(debug=True, port=5001)


# ---------------- Menjalankan Aplikasi (LOKAL) ----------------
if __name__ == "__main__":
    main()
