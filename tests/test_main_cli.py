from __future__ import annotations

import os

import pytest

pytest.importorskip("PySide6")

from image_cropper import main as cli
from image_cropper.crop.errors import ExportError, LoadError, UserCancelled
from image_cropper.crop.export import CropResult, OutputFile, data_uri


@pytest.fixture
def clean_log_env(monkeypatch):
    # Registered so monkeypatch restores whatever the CLI writes
    monkeypatch.setenv("IMAGE_CROPPER_LOG_LEVEL", "")
    monkeypatch.setenv("IMAGE_CROPPER_LOG_CATS", "")


def _fake_result() -> CropResult:
    payload = b"\xff\xd8fake-jpeg"
    return CropResult(
        preview_url=data_uri(payload),
        output_file=OutputFile("avatar.jpg", payload),
        output_blob=payload,
        width=10,
        height=10,
    )


def test_logging_flags_are_stripped_into_env(clean_log_env) -> None:
    rest = cli._apply_cli_logging_options(["prog", "in.jpg", "--log-level", "debug", "--log-cats", "session", "--aspect", "1:1"])

    assert rest == ["prog", "in.jpg", "--aspect", "1:1"]
    assert os.environ["IMAGE_CROPPER_LOG_LEVEL"] == "debug"
    assert os.environ["IMAGE_CROPPER_LOG_CATS"] == "session"


def test_option_overrides_only_include_given_flags() -> None:
    parser = cli.build_parser()

    assert cli.option_overrides(parser.parse_args(["in.jpg"])) == {}
    overrides = cli.option_overrides(
        parser.parse_args(["in.jpg", "--aspect", "16:9", "--max-size", "800", "--quality", "0.5", "--circular"])
    )
    assert overrides == {
        "aspect_ratio": pytest.approx(16 / 9),
        "max_output_size": 800,
        "compression_quality": 0.5,
        "circular_preview": True,
    }
    assert cli.option_overrides(parser.parse_args(["in.jpg", "--aspect", "free"])) == {"aspect_ratio": None}


def test_main_writes_output_on_save(tmp_path, monkeypatch, clean_log_env, capsys) -> None:
    seen = {}

    def fake_run(parent, source, name, options, presets=None):
        seen.update(source=source, name=name, options=options, presets=presets)
        return _fake_result()

    monkeypatch.setattr(cli, "run_crop_dialog", fake_run)
    out_dir = tmp_path / "out"
    code = cli.main(
        [
            "image-cropper",
            str(tmp_path / "in.jpg"),
            "--name",
            "avatar",
            "--quality",
            "0.4",
            "--output-dir",
            str(out_dir),
            "--settings",
            str(tmp_path / "settings.json"),
        ]
    )

    assert code == cli.EXIT_SAVED
    assert (out_dir / "avatar.jpg").read_bytes() == b"\xff\xd8fake-jpeg"
    assert seen["name"] == "avatar"
    assert seen["options"].compression_quality == 0.4
    assert seen["presets"][0] == ("Free", None)
    assert str(out_dir / "avatar.jpg") in capsys.readouterr().out


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (UserCancelled(), cli.EXIT_CANCELLED),
        (LoadError("bad bytes"), cli.EXIT_FAILED),
        (ExportError("no surface"), cli.EXIT_FAILED),
    ],
)
def test_main_exit_codes(tmp_path, monkeypatch, clean_log_env, error, expected) -> None:
    def fake_run(*args, **kwargs):
        raise error

    monkeypatch.setattr(cli, "run_crop_dialog", fake_run)
    code = cli.main(["image-cropper", str(tmp_path / "in.jpg"), "--settings", str(tmp_path / "s.json")])

    assert code == expected


def test_invalid_option_exits_with_usage_error(tmp_path, clean_log_env) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["image-cropper", "in.jpg", "--quality", "5", "--settings", str(tmp_path / "s.json")])
    assert exc.value.code == 2


def test_malformed_settings_value_exits_with_usage_error(tmp_path, clean_log_env) -> None:
    settings = tmp_path / "s.json"
    settings.write_text('{"compression_quality": {"q": 1}}', encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        cli.main(["image-cropper", "in.jpg", "--settings", str(settings)])
    assert exc.value.code == 2
