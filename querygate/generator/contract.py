"""
Strict parsing of generator responses.

The generator is asked for a bare JSON object. Anything else fails closed
with GeneratorContractError; no attempt is made to repair or extract JSON
from surrounding prose.
"""

import json
from typing import Any

from ..errors import GeneratorContractError
from .base import Explanation, GeneratedSQL

_SCALARS = (str, int, float, bool, type(None))


def _load_object(text: Any) -> dict:
    if not isinstance(text, str) or not text.strip():
        raise GeneratorContractError("Generator returned empty content")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        raise GeneratorContractError("Generator output is not valid JSON")
    if not isinstance(data, dict):
        raise GeneratorContractError("Generator output must be a JSON object")
    return data


def parse_sql_response(text: str) -> GeneratedSQL:
    """
    Parse {"sql": "...", "params": [...]} into GeneratedSQL.

    params is optional; when present it must be a list of scalars.
    """
    data = _load_object(text)

    sql = data.get("sql")
    if not isinstance(sql, str) or not sql.strip():
        raise GeneratorContractError("Generator JSON missing sql")

    params = data.get("params")
    if params is None:
        params = []
    if not isinstance(params, list):
        raise GeneratorContractError("Generator JSON params is not an array")
    if not all(isinstance(p, _SCALARS) for p in params):
        raise GeneratorContractError("Generator JSON params must be scalar values")

    return GeneratedSQL(sql=sql, params=params)


def parse_explanation_response(text: str) -> Explanation:
    """Parse {"answer": "...", "references": [...]} into Explanation."""
    data = _load_object(text)

    answer = data.get("answer")
    if not isinstance(answer, str) or not answer.strip():
        raise GeneratorContractError("Generator JSON missing answer")

    references = data.get("references")
    if references is None:
        references = []
    if not isinstance(references, list) or not all(isinstance(r, str) for r in references):
        raise GeneratorContractError("Generator JSON references must be an array of strings")

    return Explanation(answer=answer, references=references)
