import json

import yaml

from salesrecon.pipeline import build_arg_parser, main


def _write_config(tmp_path):
    path = tmp_path / "salesrecon.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "paths": {"data_dir": str(tmp_path / "data"), "logs_dir": str(tmp_path / "logs")},
                "retention": {"windows_months": [600]},
            }
        ),
        encoding="utf-8",
    )
    return path


def _write_dot_file(tmp_path):
    header = ["Date Range", "Customer Name", "Item Description", "DOT #", "Dollars", "Cases"]
    row = ["2025-06-01 - 2025-06-30", "Store A", "CLARAS BACON BURRITO", "763494", "120.00", "2"]
    path = tmp_path / "DOT 6.25.txt"
    path.write_text("\t".join(header) + "\n" + "\t".join(row) + "\n", encoding="utf-8")
    return path


def test_arg_parser_subcommands():
    args = build_arg_parser().parse_args(["upload", "petes", "a.xlsx", "b.xlsx"])
    assert args.command == "upload"
    assert args.inputs == ["a.xlsx", "b.xlsx"]
    args = build_arg_parser().parse_args(["delete-period", "kehe", "2025-06"])
    assert (args.channel, args.period) == ("kehe", "2025-06")


def test_cli_upload_summary_and_delete(tmp_path, capsys):
    config = _write_config(tmp_path)
    dot_file = _write_dot_file(tmp_path)

    assert main(["--config", str(config), "upload", "dot", str(dot_file)]) == 0
    uploaded = json.loads(capsys.readouterr().out)
    assert uploaded["distributor"] == "dot"
    assert uploaded["channels"]["dot"]["added"] == 1
    assert (tmp_path / "data" / "dot.json").exists()

    assert main(["--config", str(config), "summary", "--channel", "dot"]) == 0
    summary = json.loads(capsys.readouterr().out)
    channel = summary["channels"][0]
    assert channel["channel"] == "dot"
    assert channel["totals"]["revenue"] == 120.0
    assert channel["months"][0]["period"] == "2025-06"
    assert channel["hierarchy"]["cases"][0]["customer"] == "Store A"
    assert channel["hierarchy"]["cases"][0]["Jun"] == 2
    assert summary["combined"]["records"] == 0

    assert main(["--config", str(config), "delete-period", "dot", "2025-06"]) == 0
    assert json.loads(capsys.readouterr().out)["deleted"] == 1
