import pytest

from ai_agent.errors import ActionValidationError, PlanParseError, UnsupportedOperation
from ai_agent.models import FileAction, PackageAction, ProcessAction, UnknownAction
from ai_agent.plan_parser import clean_plan_text, extract_json_object, parse_plan

FENCED = """Sure! Here is the plan:
```json
{
  // create the folder first
  "type": "file",
  "actions": [
    {"type": "file-operation", "action": "mkdir", "path": "src"}, /* inline */
    {"type": "file-operation", "action": "write", "path": "src/a.txt", "content": "x"}
  ],
  "context": {"description": "make src", "needsMonitoring": true, "estimated_time": 1}
}
```
Let me know if you need anything else."""


def test_parse_fenced_plan_with_prose_and_comments():
    plan = parse_plan(FENCED)
    assert plan.type == "file"
    assert [a.action for a in plan.actions] == ["mkdir", "write"]
    assert isinstance(plan.actions[1], FileAction)
    assert plan.actions[1].content == "x"
    assert plan.context.description == "make src"
    assert plan.context.needs_monitoring is True
    assert plan.context.estimated_time == "1"


def test_comment_markers_inside_strings_survive():
    text = (
        '{"actions": [{"type": "database-operation", "dbType": "mongodb", "action": "query",'
        ' "connectionString": "mongodb://localhost:27017/app", "collection": "users"}],'
        ' "context": {"description": "glob /* not a comment */ here"}}'
    )
    plan = parse_plan(text)
    assert plan.actions[0].connection_string == "mongodb://localhost:27017/app"
    assert plan.context.description == "glob /* not a comment */ here"
    assert plan.type == "composite"


def test_zero_width_characters_are_removed():
    assert clean_plan_text("\u200b{\ufeff}") == "{}"


def test_extract_json_object_ignores_trailing_text():
    assert extract_json_object('noise {"a": "}"} more {"b": 1}') == '{"a": "}"}'


def test_missing_or_unbalanced_object_raises():
    with pytest.raises(PlanParseError):
        parse_plan("I could not understand that.")
    with pytest.raises(PlanParseError):
        parse_plan('{"actions": [')


def test_invalid_json_and_missing_actions_raise():
    with pytest.raises(PlanParseError):
        parse_plan("{'actions': []}")
    with pytest.raises(PlanParseError):
        parse_plan('{"type": "file"}')


def test_unknown_action_kind_is_skipped_unless_strict():
    text = '{"actions": [{"type": "teleport-operation", "where": "mars"}]}'
    plan = parse_plan(text)
    assert isinstance(plan.actions[0], UnknownAction)
    assert plan.actions[0].type == "teleport-operation"
    with pytest.raises(UnsupportedOperation):
        parse_plan(text, strict=True)


def test_action_fields_are_validated():
    with pytest.raises(ActionValidationError):
        parse_plan('{"actions": [{"type": "file-operation", "action": "read"}]}')
    with pytest.raises(ActionValidationError):
        parse_plan('{"actions": [{"type": "process-operation", "action": "start"}]}')
    with pytest.raises(ActionValidationError):
        parse_plan('{"actions": [{"type": "process-operation", "action": "stop"}]}')


def test_process_and_package_options_are_normalised():
    plan = parse_plan(
        '{"actions": ['
        '{"type": "process-operation", "action": "start", "command": "npm start",'
        ' "options": {"name": "web", "waitForExit": false, "logFile": "logs/web.log"}},'
        '{"type": "package-operation", "manager": "npm", "action": "install",'
        ' "packages": "express", "options": ["--save", "--no-audit"]}'
        "]}"
    )
    proc, pkg = plan.actions
    assert isinstance(proc, ProcessAction)
    assert proc.options.name == "web"
    assert proc.options.log_file == "logs/web.log"
    assert isinstance(pkg, PackageAction)
    assert pkg.packages == ["express"]
    assert pkg.options == "--save --no-audit"
