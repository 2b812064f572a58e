import pytest
from google.genai import types

from emodiary.utils.ai_utils import (
    PARSE_ERROR,
    ResponseExtractionError,
    extract_json,
    extract_text,
    strip_code_fences,
)
from conftest import gemini_response


@pytest.mark.parametrize("raw, expected", [
    ('{"a": 1}', '{"a": 1}'),
    ('```json\n{"a": 1}\n```', '{"a": 1}'),
    ('```\n{"a": 1}\n```', '{"a": 1}'),
    ('  ```json{"a": 1}```  ', '{"a": 1}'),
])
def test_strip_code_fences(raw, expected):
    assert strip_code_fences(raw) == expected


def test_extract_text_reads_first_part_only():
    response = types.GenerateContentResponse(candidates=[
        types.Candidate(content=types.Content(role="model", parts=[types.Part(text="first"), types.Part(text="second")]))
    ])

    assert extract_text(response) == "first"


def test_extract_json_returns_parsed_object():
    assert extract_json(gemini_response('```json\n{"recommendations": []}\n```')) == {"recommendations": []}


def test_parse_error_keeps_its_stage():
    with pytest.raises(ResponseExtractionError) as exc_info:
        extract_json(gemini_response("```json\n{not json}\n```"))
    assert exc_info.value.stage == PARSE_ERROR
