import asyncio
import logging
import os

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from web3 import Web3

from holder_snapshot.config import SnapshotConfig
from holder_snapshot.errors import SnapshotError
from holder_snapshot.export import csv_filename, detailed_rows, render_csv, summary_rows
from holder_snapshot.orchestrator import snapshot_contract

app = Flask(__name__)
# Allow the front-end origins on ALL /api/* routes, including OPTIONS
CORS(app, resources={r"/api/*": {"origins": os.getenv("CORS_ORIGINS", "*").split(",")}})

# ─── CONFIG ─────────────────────────────────────────────────────
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CONFIG = SnapshotConfig.from_env()


def run_snapshot(raw_address):
    contract = Web3.to_checksum_address(raw_address.strip())
    logger.info(f"Snapshot requested for {contract}")
    return asyncio.run(snapshot_contract(contract, CONFIG))


def error_status(exc):
    if isinstance(exc, ValueError):
        return 400
    if isinstance(exc, SnapshotError):
        return 502
    return 500


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"}), 200


@app.route("/api/snapshot", methods=["POST"])
def get_snapshot():
    """
    Expects form-data: contract=<0x...>
    Returns the holder list plus totals; on failure {"holders": [], "error": "..."}
    """
    try:
        result = run_snapshot(request.form.get("contract", ""))
        logger.info(f"Found {result.total_holders} holders of {result.symbol}")
        return jsonify({**result.as_dict(), "error": None})
    except Exception as e:
        logger.error(f"Error in get_snapshot: {e}")
        return jsonify({"holders": [], "error": str(e)}), error_status(e)


@app.route("/api/snapshot/<contract>.csv", methods=["GET"])
def download_snapshot(contract):
    detailed = request.args.get("detailed", "").lower() in ("1", "true", "yes")
    try:
        result = run_snapshot(contract)
    except Exception as e:
        logger.error(f"Error in download_snapshot: {e}")
        return jsonify({"error": str(e)}), error_status(e)

    rows = detailed_rows(result.holders) if detailed else summary_rows(result.holders)
    filename = csv_filename(result.symbol, "detailed" if detailed else "summary")
    return Response(
        render_csv(rows),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
