from mock_tool.__main__ import build_parser, main


def test_defaults():
    args = build_parser().parse_args([])
    assert args.port == 8888
    assert args.host == "0.0.0.0"
    assert args.config is None
    assert not args.verbose and not args.ready_mode and not args.trace


def test_short_flags():
    args = build_parser().parse_args(["-c", "rules.json", "-p", "9000", "-v", "-r"])
    assert args.config == "rules.json"
    assert args.port == 9000
    assert args.verbose and args.ready_mode


def test_missing_config_exits_1(tmp_path):
    assert main(["-c", str(tmp_path / "missing.json")]) == 1


def test_non_array_config_exits_1(tmp_path):
    config = tmp_path / "rules.json"
    config.write_text('{"response": "x"}')
    assert main(["-c", str(config)]) == 1
