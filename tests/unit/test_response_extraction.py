# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from domain.proposal import PromptChangeProposal
from errors import ExtractionError, NoStructuredDataError, StructureError
from mutation.extraction import extract_proposal, iter_balanced_objects


def test_clean_json_is_returned_directly() -> None:
    proposal = PromptChangeProposal(prompt="Hello ${name}!", summary="Made greeting warmer")

    assert extract_proposal(json.dumps(proposal.to_dict())) == proposal


def test_object_wrapped_in_prose_is_recovered() -> None:
    text = (
        "Sure! Here is the update:\n"
        '{"prompt": "Be concise.", "summary": "Shortened replies"}\n'
        "Let me know if you need anything else."
    )

    assert extract_proposal(text) == PromptChangeProposal(
        prompt="Be concise.",
        summary="Shortened replies",
    )


def test_code_fenced_object_is_recovered() -> None:
    text = '```json\n{"prompt": "p", "summary": "s"}\n```'

    assert extract_proposal(text) == PromptChangeProposal(prompt="p", summary="s")


def test_braces_inside_strings_do_not_break_matching() -> None:
    text = 'Result: {"prompt": "Use {{name}} and ${city} here }", "summary": "kept vars"} done'

    proposal = extract_proposal(text)

    assert proposal.prompt == "Use {{name}} and ${city} here }"
    assert proposal.summary == "kept vars"


def test_escaped_quotes_inside_strings() -> None:
    text = 'x {"prompt": "Say \\"hi\\" {", "summary": "quoted"} y'

    assert extract_proposal(text).prompt == 'Say "hi" {'


def test_stray_brace_in_prose_before_object() -> None:
    text = 'Note: { is unbalanced here. {"prompt": "p", "summary": "s"}'

    assert extract_proposal(text) == PromptChangeProposal(prompt="p", summary="s")


def test_missing_field_is_structure_error() -> None:
    with pytest.raises(StructureError) as exc_info:
        extract_proposal('Here you go: {"prompt": "only prompt"}')

    assert "summary" in str(exc_info.value)


def test_non_text_field_is_structure_error() -> None:
    with pytest.raises(StructureError):
        extract_proposal('{"prompt": 42, "summary": "numbers"}')


def test_plain_prose_is_no_structured_data_error() -> None:
    with pytest.raises(NoStructuredDataError) as exc_info:
        extract_proposal("I think the prompt should be friendlier.")

    assert str(exc_info.value) == "No valid JSON found in response"


def test_unparseable_balanced_object_is_no_structured_data_error() -> None:
    with pytest.raises(NoStructuredDataError):
        extract_proposal("{not: json}")


def test_only_first_balanced_object_is_considered() -> None:
    text = 'Draft {not: json} final {"prompt": "p", "summary": "s"}'

    with pytest.raises(NoStructuredDataError):
        extract_proposal(text)


def test_non_object_json_is_no_structured_data_error() -> None:
    with pytest.raises(NoStructuredDataError):
        extract_proposal('["prompt", "summary"]')


def test_failures_share_a_base_type() -> None:
    for text in ("nothing here", '{"summary": "s"}'):
        with pytest.raises(ExtractionError):
            extract_proposal(text)


def test_iter_balanced_objects_yields_outer_before_nested() -> None:
    found = list(iter_balanced_objects('a {"x": {"y": 1}} b {"z": 2}'))

    assert found == ['{"x": {"y": 1}}', '{"y": 1}', '{"z": 2}']
