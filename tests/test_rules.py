import json

import pytest

from mock_tool.rules import DEFAULT_RULE, ConfigError, load_rules, normalize_rule


def test_defaults_for_empty_rule():
    rule = normalize_rule({})
    assert rule.status == 200
    assert rule.method == ""
    assert rule.url_filter == ""
    assert rule.headers_filter is None
    assert rule.response == ""
    assert rule.encoding == ""
    assert rule.ignored_headers == ("accept-encoding",)
    assert dict(rule.headers) == {}


def test_status_is_parsed():
    assert normalize_rule({"status": "404"}).status == 404
    assert normalize_rule({"status": "503 busy"}).status == 503
    assert normalize_rule({"status": 201.0}).status == 201
    assert normalize_rule({"status": "nope"}).status == 200
    assert normalize_rule({"status": 0}).status == 200
    assert normalize_rule({"status": True}).status == 200


def test_non_string_response_becomes_json_text():
    assert normalize_rule({"response": {"b": 1, "a": [1, 2]}}).response == '{"b":1,"a":[1,2]}'
    assert normalize_rule({"response": 42}).response == "42"
    assert normalize_rule({"response": False}).response == "false"
    assert normalize_rule({"response": None}).response == ""
    assert normalize_rule({"response": "plain"}).response == "plain"


def test_integral_floats_serialize_as_integers():
    raw = json.loads('{"response": {"n": 1e3, "m": 2.0, "f": 1.5, "l": [3.0, -0.5]}}')
    assert normalize_rule(raw).response == '{"n":1000,"m":2,"f":1.5,"l":[3,-0.5]}'
    assert normalize_rule({"response": 4.0}).response == "4"


def test_numeric_text_fields_become_strings():
    rule = normalize_rule({"urlFilter": 123, "method": 5, "encoding": 1252.0})
    assert rule.url_filter == "123"
    assert rule.method == "5"
    assert rule.encoding == "1252"


def test_malformed_optional_fields_take_defaults():
    rule = normalize_rule({
        "method": ["GET"],
        "urlFilter": ["x"],
        "headersFilter": "x-env",
        "ignoredHeaders": "accept",
        "headers": ["Content-Type"],
        "encoding": None,
    })
    assert rule.method == ""
    assert rule.url_filter == ""
    assert rule.headers_filter is None
    assert rule.ignored_headers == ("accept-encoding",)
    assert dict(rule.headers) == {}
    assert rule.encoding == ""


def test_non_object_entry_is_empty_rule():
    assert normalize_rule("GET /") == normalize_rule({})


def test_rule_is_immutable():
    raw = {"headers": {"Content-Type": "text/plain"}, "ignoredHeaders": ["user-agent"]}
    rule = normalize_rule(raw)
    raw["headers"]["X-Later"] = "1"
    assert "X-Later" not in rule.headers
    with pytest.raises(TypeError):
        rule.headers["X-Other"] = "1"
    with pytest.raises(AttributeError):
        rule.status = 500
    assert rule.ignored_headers == ("user-agent",)


def test_default_rule():
    assert DEFAULT_RULE.status == 200
    assert DEFAULT_RULE.response == "No rule was matched."
    assert DEFAULT_RULE.url_filter == ""
    assert DEFAULT_RULE.ignored_headers == ("accept-encoding",)


def test_load_rules(tmp_path):
    config = tmp_path / "rules.json"
    config.write_text(json.dumps([
        {"method": "GET", "urlFilter": "users/\\d+", "response": {"id": 1}},
        {"status": 404},
    ]))
    rules = load_rules(str(config))
    assert len(rules) == 2
    assert rules[0].response == '{"id":1}'
    assert rules[1].status == 404


def test_load_rules_without_config():
    assert load_rules(None) == ()


def test_load_rules_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="missing"):
        load_rules(str(tmp_path / "nope.json"))


def test_load_rules_requires_array(tmp_path):
    config = tmp_path / "rules.json"
    config.write_text('{"status": 200}')
    with pytest.raises(ConfigError, match="array"):
        load_rules(str(config))


def test_load_rules_invalid_json(tmp_path):
    config = tmp_path / "rules.json"
    config.write_text('[{"status": ')
    with pytest.raises(ConfigError):
        load_rules(str(config))
