from __future__ import annotations

import pytest

from image_cropper.crop import session as session_module
from image_cropper.crop.errors import ExportError, LoadError, UserCancelled
from image_cropper.crop.export import ExportPipeline
from image_cropper.crop.options import CropOptions
from image_cropper.crop.session import CropSession, SessionState
from tests.helpers.executors import DeferredExecutor, InlineExecutor


@pytest.fixture
def jpeg(make_image_bytes) -> bytes:
    return make_image_bytes(1600, 800)


def _ready(source: bytes, options: CropOptions | None = None, executor=None) -> CropSession:
    session = CropSession(source, "photo", options, executor=executor or InlineExecutor())
    session.open()
    assert session.state is SessionState.READY
    session.layout(800, 400)
    return session


def _outcome_error(session: CropSession) -> BaseException:
    assert session.outcome.done()
    return session.outcome.exception()


def test_open_moves_through_loading_to_ready(jpeg) -> None:
    ex = DeferredExecutor()
    session = CropSession(jpeg, "photo", executor=ex)
    assert session.state is SessionState.IDLE

    loaded = session.open()
    assert session.state is SessionState.LOADING
    assert not loaded.done()

    ex.run_pending()
    assert session.state is SessionState.READY
    info = loaded.result()
    assert (info.width, info.height) == (1600, 800)


def test_layout_creates_region_and_interaction(jpeg) -> None:
    session = _ready(jpeg)

    assert session.geometry.display_width == 800
    assert session.region.rect.as_tuple() == pytest.approx((220, 20, 360, 360))
    assert session.interaction is not None
    assert session.interaction.region is session.region


def test_same_layout_keeps_edits_new_layout_reinitialises(jpeg) -> None:
    session = _ready(jpeg)
    session.region.move(-100, 0)
    moved = session.region.rect

    session.layout(800, 400)
    assert session.region.rect == moved

    session.layout(400, 200)
    assert session.region.rect.as_tuple() == pytest.approx((110, 10, 180, 180))


def test_save_resolves_with_result(jpeg) -> None:
    session = _ready(jpeg)
    outcome = session.save()

    assert session.state is SessionState.RESOLVED
    result = outcome.result()
    # 360 display px of a 2x downscaled layout -> 720 natural px
    assert (result.width, result.height) == (720, 720)
    assert result.output_file.name == "photo.jpg"
    assert session.result() is result
    assert session.interaction.closed


def test_cancel_while_idle_rejects_with_user_cancelled() -> None:
    session = CropSession(b"irrelevant", "photo", executor=InlineExecutor())

    assert session.cancel() is True
    assert session.state is SessionState.REJECTED
    assert isinstance(_outcome_error(session), UserCancelled)
    with pytest.raises(RuntimeError):
        session.open()


def test_cancel_while_loading_discards_decode(jpeg) -> None:
    ex = DeferredExecutor()
    session = CropSession(jpeg, "photo", executor=ex)
    loaded = session.open()

    assert session.cancel() is True
    assert isinstance(loaded.exception(), UserCancelled)

    ex.run_pending()
    assert session.state is SessionState.REJECTED
    assert session.decoded is None
    assert isinstance(_outcome_error(session), UserCancelled)


def test_cancel_landing_just_after_decode_keeps_load_result(jpeg, monkeypatch) -> None:
    ex = DeferredExecutor()
    session = CropSession(jpeg, "photo", executor=ex)
    loaded = session.open()

    def cancel_when_loaded(msg, *args, **kwargs):
        if msg.startswith("Source image loaded"):
            session.cancel()

    monkeypatch.setattr(session_module._logger, "info", cancel_when_loaded)
    ex.run_pending()

    assert loaded.exception() is None
    assert loaded.result().width == 1600
    assert session.state is SessionState.REJECTED
    assert isinstance(_outcome_error(session), UserCancelled)


def test_cancel_while_ready_tears_down_interaction(jpeg) -> None:
    session = _ready(jpeg)
    session.interaction.pointer_down(400, 200)

    assert session.cancel() is True
    assert session.interaction.closed
    assert session.interaction.capture is None
    with pytest.raises(UserCancelled):
        session.result()


def test_cancel_is_ignored_once_saving(jpeg) -> None:
    ex = DeferredExecutor()
    session = CropSession(jpeg, "photo", executor=ex)
    session.open()
    ex.run_pending()
    session.layout(800, 400)

    session.save()
    assert session.state is SessionState.SAVING
    assert session.cancel() is False

    ex.run_pending()
    assert session.state is SessionState.RESOLVED
    assert session.result().width == 720


def test_cancel_after_terminal_is_noop(jpeg) -> None:
    session = _ready(jpeg)
    session.save()

    assert session.cancel() is False
    assert session.state is SessionState.RESOLVED


def test_empty_source_is_a_load_error() -> None:
    session = CropSession(b"", "photo", executor=InlineExecutor())
    loaded = session.open()

    assert session.state is SessionState.REJECTED
    assert isinstance(loaded.exception(), LoadError)
    assert isinstance(_outcome_error(session), LoadError)


def test_undecodable_source_is_a_load_error() -> None:
    pytest.importorskip("pyvips")
    session = CropSession(b"definitely not an image", "photo", executor=InlineExecutor())
    session.open()

    assert session.state is SessionState.REJECTED
    assert isinstance(_outcome_error(session), LoadError)


def test_normalizer_output_is_decoded(jpeg) -> None:
    seen: list[tuple[bytes, str]] = []

    def normalize(data: bytes, filename: str) -> bytes:
        seen.append((data, filename))
        return jpeg

    session = CropSession(b"HEIC...", "photo", filename="shot.heic", executor=InlineExecutor(), normalizer=normalize)
    session.open()

    assert seen == [(b"HEIC...", "shot.heic")]
    assert session.state is SessionState.READY


def test_normalizer_failure_is_a_load_error() -> None:
    def normalize(data: bytes, filename: str) -> bytes:
        raise OSError("converter missing")

    session = CropSession(b"HEIC...", "photo", filename="shot.heic", executor=InlineExecutor(), normalizer=normalize)
    session.open()

    err = _outcome_error(session)
    assert isinstance(err, LoadError)
    assert isinstance(err.__cause__, OSError)


def test_export_failure_rejects_with_export_error(jpeg, monkeypatch) -> None:
    def boom(self, *args, **kwargs):
        raise ExportError("no memory for surface")

    monkeypatch.setattr(ExportPipeline, "run", boom)
    session = _ready(jpeg)
    session.save()

    assert session.state is SessionState.REJECTED
    assert str(_outcome_error(session)) == "no memory for surface"


def test_unexpected_export_exception_is_wrapped(jpeg, monkeypatch) -> None:
    def boom(self, *args, **kwargs):
        raise MemoryError("surface")

    monkeypatch.setattr(ExportPipeline, "run", boom)
    session = _ready(jpeg)
    session.save()

    err = _outcome_error(session)
    assert isinstance(err, ExportError)
    assert isinstance(err.__cause__, MemoryError)


def test_wrong_state_calls_raise_without_transition(jpeg) -> None:
    ex = DeferredExecutor()
    session = CropSession(jpeg, "photo", executor=ex)

    with pytest.raises(RuntimeError):
        session.save()
    with pytest.raises(RuntimeError):
        session.layout(800, 400)
    assert session.state is SessionState.IDLE

    session.open()
    with pytest.raises(RuntimeError):
        session.open()
    ex.run_pending()

    # Ready but never laid out: nothing to save yet
    with pytest.raises(RuntimeError):
        session.save()
    assert session.state is SessionState.READY


def test_zero_layout_is_rejected(jpeg) -> None:
    session = CropSession(jpeg, "photo", executor=InlineExecutor())
    session.open()
    with pytest.raises(ValueError):
        session.layout(0, 0)


def test_circular_preview_requires_locked_square(jpeg) -> None:
    session = _ready(jpeg, CropOptions(circular_preview=True))
    assert session.circular_preview_active

    session.set_aspect_ratio(4 / 3)
    assert not session.circular_preview_active

    session.set_aspect_ratio(1.0)
    assert session.circular_preview_active

    session.toggle_aspect_lock(False)
    assert not session.circular_preview_active


def test_circular_preview_off_by_default(jpeg) -> None:
    session = _ready(jpeg)
    assert not session.circular_preview_active


def test_owned_executor_runs_on_worker_thread(jpeg) -> None:
    session = CropSession(jpeg, "photo")
    info = session.open().result(timeout=10)
    assert info.width == 1600

    session.layout(800, 400)
    result = session.save().result(timeout=10)
    assert result.height == 720
    assert session.state is SessionState.RESOLVED
