"""HTTP routes for the Flask API."""

import os
from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError
from werkzeug.utils import secure_filename

from investcalc import __version__
from investcalc.core.accumulation import calculate_investment
from investcalc.core.currency import currency_symbol, summarize
from investcalc.core.export import ExportJobRegistry
from investcalc.domain.accumulation import InvalidParameterError
from investcalc.models import ExportRequest, InvestmentParameters
from investcalc.schemas.accumulation import InvestmentResponse
from investcalc.schemas.export import ExportJobAccepted
from investcalc.schemas.health import PingResponse

api_bp = Blueprint("api", __name__)


def _export_jobs() -> ExportJobRegistry:
    return current_app.extensions["export_jobs"]


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    errors = exc.errors(include_url=False, include_context=False)
    return jsonify({"detail": errors}), HTTPStatus.UNPROCESSABLE_ENTITY


@api_bp.errorhandler(InvalidParameterError)
def _handle_invalid_parameters(exc: InvalidParameterError):
    return jsonify({"error": exc.errors}), HTTPStatus.BAD_REQUEST


@api_bp.get("/ping")
def ping() -> Any:
    """Health-check endpoint."""
    response = PingResponse(message="pong", version=__version__)
    return jsonify(response.model_dump())


@api_bp.post("/calc/investment")
def investment() -> Any:
    """Project an investment and return its yearly and monthly schedules."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    parameters = InvestmentParameters.model_validate(raw_payload)
    result = calculate_investment(parameters)
    response = InvestmentResponse(
        result=result,
        currency=parameters.currency,
        currency_symbol=currency_symbol(parameters.currency),
        summary=summarize(result, parameters.currency),
    )
    return jsonify(response.model_dump(mode="json"))


@api_bp.post("/export")
def start_export() -> Any:
    """Calculate, then write the chosen schedule to CSV in the background."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = ExportRequest.model_validate(raw_payload)

    filename = secure_filename(payload.filename)
    if not filename:
        return jsonify({"error": ["filename is not usable"]}), HTTPStatus.BAD_REQUEST
    if not filename.lower().endswith(".csv"):
        filename += ".csv"

    result = calculate_investment(payload.parameters)
    destination = os.path.join(current_app.config["EXPORT_DIR"], filename)
    job_id = _export_jobs().submit(result, payload.granularity, destination)
    return jsonify(ExportJobAccepted(job_id=job_id).model_dump()), HTTPStatus.ACCEPTED


@api_bp.get("/export/<job_id>")
def export_status(job_id: str) -> Any:
    status = _export_jobs().status(job_id)
    if status is None:
        return jsonify({"error": [f"unknown export job {job_id}"]}), HTTPStatus.NOT_FOUND
    return jsonify(status.model_dump())


@api_bp.delete("/export/<job_id>")
def cancel_export(job_id: str) -> Any:
    if not _export_jobs().cancel(job_id):
        return jsonify({"error": [f"unknown export job {job_id}"]}), HTTPStatus.NOT_FOUND
    return jsonify(ExportJobAccepted(job_id=job_id).model_dump()), HTTPStatus.ACCEPTED
