"""管理 CLI のユニットテスト"""

import io
import json
from pathlib import Path

import pytest
from k1s0_featurebox import FeatureBox, InMemoryFlagStore
from k1s0_featurebox.cli import create_parser, main, run

from .conftest import BrokenStore, FakeClock


@pytest.fixture
def featurebox(clock: FakeClock) -> FeatureBox:
    return FeatureBox(InMemoryFlagStore(clock=clock), environment="testing", clock=clock)


def invoke(featurebox: FeatureBox, *argv: str) -> tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    code = run(create_parser().parse_args(list(argv)), featurebox, out, err)
    return code, out.getvalue(), err.getvalue()


def test_enable_command(featurebox: FeatureBox) -> None:
    """enable コマンドで有効化できること。"""
    code, out, _ = invoke(featurebox, "enable", "beta")
    assert code == 0
    assert "Feature 'beta' has been enabled successfully!" in out
    assert "Conditions" not in out
    assert featurebox.is_enabled("beta") is True


def test_enable_command_with_conditions(featurebox: FeatureBox) -> None:
    """--conditions の JSON が保存されること。"""
    conditions = {"environments": ["production"]}
    code, out, _ = invoke(featurebox, "enable", "beta", f"--conditions={json.dumps(conditions)}")
    assert code == 0
    assert "Conditions:" in out
    record = featurebox.get("beta")
    assert record is not None
    assert record.conditions.to_dict() == conditions


@pytest.mark.parametrize("payload", ["{not json", "[1, 2]", ""])
def test_enable_command_rejects_bad_conditions(featurebox: FeatureBox, payload: str) -> None:
    """不正な JSON は終了コード 1 で、書き込みしないこと。"""
    code, _, err = invoke(featurebox, "enable", "beta", "--conditions", payload)
    assert code == 1
    assert err
    assert featurebox.get("beta") is None


def test_disable_command(featurebox: FeatureBox) -> None:
    """disable コマンドで無効化できること。"""
    featurebox.enable("beta")
    code, out, _ = invoke(featurebox, "disable", "beta")
    assert code == 0
    assert "Feature 'beta' has been disabled successfully!" in out
    assert featurebox.is_enabled("beta") is False


def test_commands_fail_on_storage_error() -> None:
    """ストア障害時は終了コード 1。"""
    featurebox = FeatureBox(BrokenStore())
    assert invoke(featurebox, "enable", "beta")[0] == 1
    code, _, err = invoke(featurebox, "disable", "beta")
    assert code == 1
    assert "Failed to disable feature 'beta'" in err


def test_list_command_empty(featurebox: FeatureBox) -> None:
    """フラグが無い場合のメッセージ。"""
    code, out, _ = invoke(featurebox, "list")
    assert code == 0
    assert out.strip() == "No features found."


def test_list_command_table(featurebox: FeatureBox) -> None:
    """一覧表に状態・条件・更新日時が出ること。"""
    featurebox.enable("alpha")
    featurebox.enable("beta", {"user_ids": [1]})
    featurebox.disable("alpha")
    code, out, _ = invoke(featurebox, "list")
    assert code == 0
    assert "Feature List:" in out
    lines = out.splitlines()
    alpha = next(line for line in lines if "alpha" in line)
    beta = next(line for line in lines if "beta" in line)
    assert "Disabled" in alpha and "None" in alpha
    assert "Enabled" in beta and '{"user_ids": [1]}' in beta
    assert "2025-01-01 00:00:00" in beta


def test_list_command_renders_rich_table(featurebox: FeatureBox) -> None:
    """一覧は罫線付きの表で、角括弧を含む名前もそのまま表示されること。"""
    featurebox.enable("[bold]beta")
    code, out, _ = invoke(featurebox, "list")
    assert code == 0
    lines = [line.strip() for line in out.splitlines()]
    header = next(line for line in lines if "Name" in line)
    assert header.startswith("┃")
    assert [cell.strip() for cell in header.strip("┃").split("┃")] == [
        "Name",
        "Status",
        "Conditions",
        "Updated At",
    ]
    row = next(line for line in lines if "beta" in line)
    assert row.startswith("│")
    assert "[bold]beta" in row


def test_main_with_config_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """main は設定ファイルからサービスを組み立てて実行すること。"""
    config_file = tmp_path / "featurebox.yaml"
    config_file.write_text(
        f"database:\n  url: sqlite:///{tmp_path / 'fb.db'}\nlog:\n  level: WARNING\n"
    )
    assert main(["--config", str(config_file), "enable", "beta"]) == 0
    assert main(["--config", str(config_file), "list"]) == 0
    out = capsys.readouterr().out
    assert "beta" in out
    assert "Enabled" in out


def test_main_with_missing_config(tmp_path: Path) -> None:
    """設定ファイルが読めない場合は終了コード 1。"""
    assert main(["--config", str(tmp_path / "missing.yaml"), "list"]) == 1
