import json
import logging

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .cells import load_cell_store
from .errors import ErrorTranslator, FormulaError, is_error_code
from .formula_engine import EvaluationContext, evaluate_formula
from .forms import EvaluateForm, RangeForm, RecalculateForm
from .grid import cells_to_frame, frame_preview
from .recalculation import (
    DependencyGraph, cells_to_recalculate, recalculate, recalculate_dependents,
)
from .references import expand_range, sort_cell_keys

logger = logging.getLogger(__name__)


def evaluation_context() -> EvaluationContext:
    """Build the evaluation context from project settings."""
    return EvaluationContext(
        date_format=getattr(settings, 'FORMULA_DATE_FORMAT', '%m/%d/%Y'),
        datetime_format=getattr(settings, 'FORMULA_DATETIME_FORMAT', '%m/%d/%Y, %I:%M:%S %p'),
    )


def _load_payload(request):
    """Parse the JSON body; raise FormulaError('VALUE') if it is not an object."""
    try:
        data = json.loads(request.body or b'{}')
    except (TypeError, ValueError) as e:
        raise FormulaError('VALUE', "Request body is not valid JSON", str(e))
    if not isinstance(data, dict):
        raise FormulaError('VALUE', "Request body must be a JSON object")
    return data


def _load_cells(data):
    try:
        return load_cell_store(data.get("cells"))
    except (TypeError, ValueError) as e:
        raise FormulaError('VALUE', "Invalid cells", str(e))


def _form_error(form):
    errors = json.loads(form.errors.as_json())
    return JsonResponse({"success": False, "error": errors}, status=400)


def _request_error(e: FormulaError, context: str):
    error = ErrorTranslator.translate(e, context)
    return JsonResponse(
        {"success": False, "error": error["message"], "details": error["details"]},
        status=400,
    )


# JSON API for cross-origin clients; requests carry no session or cookies
@csrf_exempt
@require_http_methods(["POST"])
def evaluate(request):
    """Evaluate one formula against the posted cells."""
    try:
        data = _load_payload(request)
        form = EvaluateForm(data)
        if not form.is_valid():
            return _form_error(form)

        cells = _load_cells(data)
        result = evaluate_formula(
            form.cleaned_data["formula"],
            form.cleaned_data["cell_id"],
            cells,
            evaluation_context(),
        )
        return JsonResponse({"success": True, "cell_id": form.cleaned_data["cell_id"], "result": result})

    except FormulaError as e:
        return _request_error(e, "evaluate")
    except Exception as e:
        logger.exception("Formula evaluation request failed")
        return JsonResponse({"success": False, "error": str(e)}, status=400)


@csrf_exempt
@require_http_methods(["POST"])
def expand(request):
    """Expand a range into its cell keys, row by row."""
    try:
        data = _load_payload(request)
        form = RangeForm(data)
        if not form.is_valid():
            return _form_error(form)

        return JsonResponse({"success": True, "cells": expand_range(form.cleaned_data["range"])})

    except FormulaError as e:
        return _request_error(e, "expand-range")


@csrf_exempt
@require_http_methods(["POST"])
def recalculate_cells(request):
    """
    Recalculate the posted cells.

    Without edited_cell every formula cell is re-evaluated once; with it,
    only that cell and its dependents, in dependency order.
    """
    try:
        data = _load_payload(request)
        form = RecalculateForm(data)
        if not form.is_valid():
            return _form_error(form)

        cells = _load_cells(data)
        context = evaluation_context()
        edited_cell = form.cleaned_data["edited_cell"]

        dep_graph = DependencyGraph.from_cells(cells)
        circular = dep_graph.detect_circular_references() or []

        if edited_cell:
            order = cells_to_recalculate(edited_cell, cells, dep_graph)
            changes = recalculate_dependents(edited_cell, cells, context, dep_graph)
        else:
            order = sort_cell_keys(cell_id for cell_id, cell in cells.items() if cell.formula)
            changes = recalculate(cells, context)

        for cell_id, display_value in changes.items():
            cells[cell_id].display_value = display_value

        preview_rows = getattr(settings, 'FORMULA_PREVIEW_ROWS', 20)
        return JsonResponse(
            {
                "success": True,
                "changes": changes,
                "order": order,
                "circular": circular,
                "cell_errors": sum(1 for value in changes.values() if is_error_code(value)),
                "preview": frame_preview(cells_to_frame(cells), preview_rows),
            }
        )

    except FormulaError as e:
        return _request_error(e, "recalculate")
    except Exception as e:
        logger.exception("Recalculation request failed")
        return JsonResponse({"success": False, "error": str(e)}, status=400)
