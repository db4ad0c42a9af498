"""One editing session from open to a single outcome.

    IDLE -> LOADING -> READY -> SAVING -> RESOLVED
    IDLE | LOADING | READY --cancel--> CANCELLED -> REJECTED(UserCancelled)
    LOADING --decode failure--> REJECTED(LoadError)
    SAVING --export failure--> REJECTED(ExportError)

Decoding and encoding run on an executor; completion callbacks may arrive on
a worker thread, so transitions are serialised with a lock. The outcome is a
`concurrent.futures.Future` settled exactly once.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum

from image_cropper.decoder import DecodedImage, decode_source
from image_cropper.logger import get_logger

from .errors import CropError, ExportError, LoadError, UserCancelled
from .export import CropResult, ExportPipeline
from .geometry import ImageGeometry, RegionRect
from .interaction import InteractionController
from .options import CropOptions
from .region import Constraints, CropRegion
from .transform import TransformController

_logger = get_logger("session")

Normalizer = Callable[[bytes, str], bytes]


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"
    CANCELLED = "cancelled"
    RESOLVED = "resolved"
    REJECTED = "rejected"


TERMINAL_STATES = frozenset({SessionState.RESOLVED, SessionState.REJECTED})


class CropSession:
    def __init__(
        self,
        source: bytes,
        base_name: str,
        options: CropOptions | None = None,
        *,
        filename: str = "",
        executor: Executor | None = None,
        normalizer: Normalizer | None = None,
    ) -> None:
        self._source = source
        self._base_name = base_name
        self._filename = filename
        self._options = options or CropOptions()
        self._normalizer = normalizer

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="crop-session")

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._loaded: Future[DecodedImage] = Future()
        self._outcome: Future[CropResult] = Future()

        self._decoded: DecodedImage | None = None
        self._geometry: ImageGeometry | None = None
        self._region: CropRegion | None = None
        self._interaction: InteractionController | None = None
        self._constraints: Constraints = self._options.constraints()
        self._transform = TransformController(
            self._options.min_scale,
            self._options.max_scale,
            self._options.scale_step,
            self._options.rotation_step,
        )

    # ---- read-only accessors ----
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def options(self) -> CropOptions:
        return self._options

    @property
    def base_name(self) -> str:
        return self._base_name

    @property
    def outcome(self) -> Future[CropResult]:
        return self._outcome

    @property
    def decoded(self) -> DecodedImage | None:
        return self._decoded

    @property
    def geometry(self) -> ImageGeometry | None:
        return self._geometry

    @property
    def region(self) -> CropRegion | None:
        return self._region

    @property
    def interaction(self) -> InteractionController | None:
        return self._interaction

    @property
    def transform(self) -> TransformController:
        return self._transform

    @property
    def constraints(self) -> Constraints:
        return self._region.constraints if self._region is not None else self._constraints

    @property
    def circular_preview_active(self) -> bool:
        c = self.constraints
        return bool(self._options.circular_preview and c.aspect_locked and c.aspect_ratio == 1)

    # ---- lifecycle ----
    def open(self) -> Future[DecodedImage]:
        """Start decoding the source; the returned future settles on READY or failure."""
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise RuntimeError(f"open() requires IDLE, session is {self._state.value}")
            self._transition(SessionState.LOADING)

        try:
            job = self._executor.submit(self._decode)
        except RuntimeError as e:
            self._reject(LoadError(f"could not schedule decode: {e}"))
            return self._loaded
        job.add_done_callback(self._on_decoded)
        return self._loaded

    def layout(
        self,
        display_width: float,
        display_height: float,
        offset_x: float = 0.0,
        offset_y: float = 0.0,
    ) -> ImageGeometry:
        """Record where the image is laid out and (re)derive the crop region."""
        with self._lock:
            if self._state is not SessionState.READY or self._decoded is None:
                raise RuntimeError(f"layout() requires READY, session is {self._state.value}")
            geometry = ImageGeometry(
                natural_width=self._decoded.width,
                natural_height=self._decoded.height,
                display_width=float(display_width),
                display_height=float(display_height),
                offset_x=float(offset_x),
                offset_y=float(offset_y),
            )
            if not geometry.is_laid_out:
                raise ValueError("display size must be positive")
            if geometry == self._geometry:
                return geometry

            self._geometry = geometry
            if self._region is None:
                self._region = CropRegion(geometry, self._constraints)
                self._interaction = InteractionController(self._region)
            else:
                if self._interaction is not None:
                    self._interaction.pointer_up()
                self._region.update_geometry(geometry)
            _logger.debug("layout: %s region=%s", geometry, self._region.rect)
            return geometry

    def toggle_aspect_lock(self, locked: bool) -> RegionRect:
        region = self._require_region()
        if self._interaction is not None:
            self._interaction.pointer_up()
        return region.toggle_aspect_lock(locked)

    def set_aspect_ratio(self, ratio: float | None) -> RegionRect:
        region = self._require_region()
        if self._interaction is not None:
            self._interaction.pointer_up()
        return region.set_aspect_ratio(ratio)

    def save(self) -> Future[CropResult]:
        """Freeze the selection and export it; returns the session outcome."""
        with self._lock:
            if self._state is not SessionState.READY:
                raise RuntimeError(f"save() requires READY, session is {self._state.value}")
            region = self._require_region()
            if self._decoded is None or self._geometry is None:
                raise RuntimeError("save() requires a decoded, laid-out image")
            rect = region.rect
            geometry = self._geometry
            constraints = region.constraints
            source = self._decoded.image
            self._transition(SessionState.SAVING)
            if self._interaction is not None:
                self._interaction.teardown()

        pipeline = ExportPipeline(source)
        try:
            job = self._executor.submit(pipeline.run, rect, geometry, constraints, self._base_name)
        except RuntimeError as e:
            self._reject(ExportError(f"could not schedule export: {e}"))
            return self._outcome
        job.add_done_callback(self._on_exported)
        return self._outcome

    def cancel(self) -> bool:
        """Dismiss the editor. Returns True when this call ended the session.

        Ignored once SAVING has begun: the in-flight encode decides the outcome.
        """
        with self._lock:
            if self._state in TERMINAL_STATES:
                return False
            if self._state is SessionState.SAVING:
                _logger.debug("cancel ignored: export already in flight")
                return False
            self._transition(SessionState.CANCELLED)
        _logger.info("Crop session cancelled by user")
        self._reject(UserCancelled())
        return True

    def result(self, timeout: float | None = None) -> CropResult:
        return self._outcome.result(timeout)

    # ---- worker side ----
    def _decode(self) -> DecodedImage:
        data = self._source
        if self._normalizer is not None:
            try:
                data = self._normalizer(data, self._filename)
            except Exception as e:
                raise LoadError(f"could not normalise {self._filename or 'source'}: {e}") from e
        return decode_source(data)

    def _on_decoded(self, job: Future[DecodedImage]) -> None:
        try:
            decoded = job.result()
        except CropError as e:
            _logger.error("Failed to load source image: %s", e, exc_info=True)
            self._reject(e if isinstance(e, LoadError) else LoadError(str(e)))
            return
        except Exception as e:
            _logger.error("Failed to load source image: %s", e, exc_info=True)
            err = LoadError(str(e))
            err.__cause__ = e
            self._reject(err)
            return

        with self._lock:
            if self._state is not SessionState.LOADING:
                # Cancelled while decoding; the decode itself cannot be aborted
                _logger.debug("decode finished after %s; result discarded", self._state.value)
                return
            self._decoded = decoded
            self._transition(SessionState.READY)
            # Settled under the lock: cancel() must never see READY with a pending load
            self._loaded.set_result(decoded)
        _logger.info("Source image loaded: %dx%d", decoded.width, decoded.height)

    def _on_exported(self, job: Future[CropResult]) -> None:
        try:
            result = job.result()
        except ExportError as e:
            _logger.error("Crop export failed: %s", e)
            self._reject(e)
            return
        except Exception as e:
            _logger.error("Crop export failed: %s", e, exc_info=True)
            err = ExportError(str(e))
            err.__cause__ = e
            self._reject(err)
            return

        with self._lock:
            if self._state is not SessionState.SAVING:
                return
            self._transition(SessionState.RESOLVED)
        self._outcome.set_result(result)
        self._finish()

    # ---- internals ----
    def _require_region(self) -> CropRegion:
        if self._region is None:
            raise RuntimeError("crop region not available until the image is laid out")
        return self._region

    def _transition(self, new: SessionState) -> None:
        _logger.debug("session %s -> %s", self._state.value, new.value)
        self._state = new

    def _reject(self, error: CropError) -> None:
        with self._lock:
            if self._state in TERMINAL_STATES:
                return
            self._transition(SessionState.REJECTED)
        if not self._loaded.done():
            self._loaded.set_exception(error)
        self._outcome.set_exception(error)
        self._finish()

    def _finish(self) -> None:
        if self._interaction is not None:
            self._interaction.teardown()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
