"""Tests for recovering roadmap JSON from model output."""

import pytest

from roadmap_gateway.generation.llm_utils import parse_llm_json_response

ROADMAP = {"milestones": [{"id": "milestone-1", "title": "Foundations", "tasks": []}]}
ROADMAP_TEXT = '{"milestones": [{"id": "milestone-1", "title": "Foundations", "tasks": []}]}'


class TestDirectParsing:
    """Responses that are already valid JSON."""

    def test_roadmap_object(self):
        assert parse_llm_json_response(ROADMAP_TEXT) == ROADMAP

    def test_milestone_list(self):
        result = parse_llm_json_response('[{"title": "Routing"}, {"title": "Switching"}]')
        assert result == [{"title": "Routing"}, {"title": "Switching"}]

    def test_empty_milestones(self):
        """Structurally empty output still parses; validation rejects it later."""
        assert parse_llm_json_response('{"milestones": []}') == {"milestones": []}

    def test_surrounding_whitespace(self):
        assert parse_llm_json_response(f"\n\n  {ROADMAP_TEXT}  \n") == ROADMAP

    def test_trailing_commas_in_tasks(self):
        content = '{"milestones": [{"title": "Basics", "tasks": [{"title": "Read",}, {"title": "Lab",},],}]}'
        result = parse_llm_json_response(content)
        assert [t["title"] for t in result["milestones"][0]["tasks"]] == ["Read", "Lab"]


class TestCodeBlockExtraction:
    """Roadmaps wrapped in markdown fences."""

    @pytest.mark.parametrize("tag", ["json", "JSON", "js", "javascript", "text", ""])
    def test_fence_tags(self, tag):
        content = f"```{tag}\n{ROADMAP_TEXT}\n```"
        assert parse_llm_json_response(content) == ROADMAP

    def test_first_fence_wins(self):
        """A second fenced example later in the answer is ignored."""
        content = f"""Your roadmap:
```json
{ROADMAP_TEXT}
```
An example task format:
```json
{{"title": "Example task", "duration": "1 hour"}}
```"""
        assert parse_llm_json_response(content) == ROADMAP

    def test_fence_with_trailing_comma(self):
        content = '```json\n{"milestones": [{"title": "Basics"},],}\n```'
        assert parse_llm_json_response(content) == {"milestones": [{"title": "Basics"}]}

    def test_unknown_tag_falls_back_to_scanning(self):
        content = f"```python\n{ROADMAP_TEXT}\n```"
        assert parse_llm_json_response(content) == ROADMAP


class TestMixedTextExtraction:
    """Roadmaps embedded in prose without fences."""

    def test_object_between_sentences(self):
        content = f"Here is a plan for Networking: {ROADMAP_TEXT} Let me know if it helps."
        assert parse_llm_json_response(content) == ROADMAP

    def test_brackets_inside_titles(self):
        content = 'Plan: {"milestones": [{"title": "Arrays [and] lists"}]} end'
        result = parse_llm_json_response(content)
        assert result["milestones"][0]["title"] == "Arrays [and] lists"

    def test_escaped_quotes_in_overview(self):
        content = r'Plan: {"milestones": [{"overview": "Learn the \"OSI\" model"}]} end'
        result = parse_llm_json_response(content)
        assert result["milestones"][0]["overview"] == 'Learn the "OSI" model'

    def test_first_object_wins(self):
        content = 'Draft: {"milestones": [{"title": "A"}]} Revised: {"milestones": [{"title": "B"}]}'
        assert parse_llm_json_response(content) == {"milestones": [{"title": "A"}]}


class TestErrorCases:
    """Responses with nothing to recover."""

    @pytest.mark.parametrize("content", ["", None, "   \n   "])
    def test_empty(self, content):
        with pytest.raises(ValueError, match="Empty LLM response"):
            parse_llm_json_response(content)

    @pytest.mark.parametrize(
        "content",
        [
            "I'm sorry, I can't build a roadmap for that course.",
            "{milestones: [Basics, Routing]}",
            '{"milestones": ["Basics", "Routing"',
        ],
    )
    def test_no_json(self, content):
        with pytest.raises(ValueError, match="no valid JSON found"):
            parse_llm_json_response(content)


class TestTolerantScanning:
    """Test the scanner against braces that are not part of the payload."""

    def test_braces_in_prose_before_payload(self):
        """A stray brace in prose should not hide the real object."""
        content = 'Use {placeholders} like this. Roadmap: {"milestones": [{"title": "Basics"}]}'
        result = parse_llm_json_response(content)
        assert result == {"milestones": [{"title": "Basics"}]}

    def test_footnote_list_before_object(self):
        """A scalar list in prose should yield to a later object."""
        content = 'As noted in [1], here it is: {"milestones": []}'
        result = parse_llm_json_response(content)
        assert result == {"milestones": []}

    def test_list_of_objects_wins_immediately(self):
        """A list holding objects is taken as the payload."""
        content = 'Milestones: [{"title": "A"}, {"title": "B"}] and {"note": "ignored"}'
        result = parse_llm_json_response(content)
        assert result == [{"title": "A"}, {"title": "B"}]

    def test_nested_object_with_closing_brace_in_string(self):
        """Braces inside JSON strings should not end the object early."""
        content = 'Output: {"milestones": [{"title": "Dicts {and} sets", "tasks": []}]} done'
        result = parse_llm_json_response(content)
        assert result["milestones"][0]["title"] == "Dicts {and} sets"

    def test_unclosed_prose_brace_then_payload(self):
        """An unbalanced brace in prose should only cost one failed attempt."""
        content = 'Remember the { character. {"milestones": [{"id": "m1"}]}'
        result = parse_llm_json_response(content)
        assert result == {"milestones": [{"id": "m1"}]}


class TestProviderResponses:
    """Test response shapes seen from roadmap providers."""

    def test_json_object_mode_response(self):
        """Structured-output responses parse directly."""
        content = '{"milestones": [{"id": "milestone-1", "title": "Foundations", "tasks": []}]}'
        result = parse_llm_json_response(content)
        assert isinstance(result, dict)
        assert result["milestones"][0]["title"] == "Foundations"

    def test_fenced_roadmap_with_commentary(self):
        """A fenced roadmap with chatty text around it."""
        content = """Sure! Here is your roadmap:
```json
{
    "milestones": [
        {"id": "m1", "title": "IP Addressing", "skills": ["Subnetting", "CIDR"]},
        {"id": "m2", "title": "Routing", "skills": ["OSPF", "BGP"]}
    ]
}
```
Good luck with your studies."""
        result = parse_llm_json_response(content)
        assert isinstance(result, dict)
        assert len(result["milestones"]) == 2
        assert result["milestones"][1]["skills"] == ["OSPF", "BGP"]

    def test_bare_milestone_list(self):
        """Some models return the milestone list without a wrapper."""
        content = """```json
[
    {"title": "Month one", "tasks": ["Read the RFC", "Set up a lab"]},
]
```"""
        result = parse_llm_json_response(content)
        assert isinstance(result, list)
        assert result[0]["tasks"] == ["Read the RFC", "Set up a lab"]

    def test_roadmap_with_trailing_commas(self):
        """Trailing commas from the model are tolerated."""
        content = '{"milestones": [{"title": "Basics", "resources": [],},],}'
        result = parse_llm_json_response(content)
        assert result == {"milestones": [{"title": "Basics", "resources": []}]}

    def test_unicode_titles(self):
        """Non-ASCII content survives extraction."""
        content = 'Roadmap: {"milestones": [{"title": "网络基础"}]}'
        result = parse_llm_json_response(content)
        assert result["milestones"][0]["title"] == "网络基础"
