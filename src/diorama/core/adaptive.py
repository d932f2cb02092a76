"""Adaptive resolution scale driven by measured frame time.

The renderer traces at an internal resolution of ``display * scale`` and
upscales for presentation. After every frame the measured wall-clock time is
folded into an exponentially weighted moving average and the scale is nudged
toward the value that would hit the target frame time:

    avg    = smoothing * frame_ms + (1 - smoothing) * avg
    factor = clamp(sqrt(target_ms / avg), 1 - max_step, 1 + max_step)
    scale  = clamp(scale * factor, min_scale, max_scale)

Render cost scales with pixel count, i.e. with scale squared, hence the
square root. A dead-band around the target keeps the scale from jittering
when the frame time hovers near it. Faster-than-target frames never lower
the scale and slower frames never raise it.
"""

import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class QualityConfig:
    """Tuning of the adaptive resolution controller.

    Attributes:
        target_ms: Frame time the controller aims for.
        min_scale: Lower bound on the resolution scale.
        max_scale: Upper bound on the resolution scale.
        initial_scale: Scale used for the first frame.
        smoothing: EWMA weight of the newest frame time, in (0, 1].
        max_step: Largest relative scale change per frame, in (0, 1).
        deadband: Relative frame-time error tolerated without adjusting.
    """

    target_ms: float = 30.0
    min_scale: float = 0.45
    max_scale: float = 1.0
    initial_scale: float = 1.0
    smoothing: float = 0.2
    max_step: float = 0.1
    deadband: float = 0.05

    def __post_init__(self) -> None:
        if self.target_ms <= 0.0:
            raise ValueError(f"target_ms must be positive, got {self.target_ms}")
        if not 0.0 < self.min_scale <= self.max_scale <= 1.0:
            raise ValueError(
                f"Scale bounds must satisfy 0 < min_scale <= max_scale <= 1, "
                f"got [{self.min_scale}, {self.max_scale}]"
            )
        if not self.min_scale <= self.initial_scale <= self.max_scale:
            raise ValueError(
                f"initial_scale {self.initial_scale} outside [{self.min_scale}, {self.max_scale}]"
            )
        if not 0.0 < self.smoothing <= 1.0:
            raise ValueError(f"smoothing must be in (0, 1], got {self.smoothing}")
        if not 0.0 < self.max_step < 1.0:
            raise ValueError(f"max_step must be in (0, 1), got {self.max_step}")
        if self.deadband < 0.0:
            raise ValueError(f"deadband must be non-negative, got {self.deadband}")


class AdaptiveQuality:
    """EWMA frame-time tracker owning the current resolution scale.

    Example:
        >>> quality = AdaptiveQuality()
        >>> quality.update(60.0)  # slow frame, scale drops
        0.9
        >>> quality.internal_resolution(960, 540)
        (864, 486)
    """

    def __init__(self, config: QualityConfig | None = None) -> None:
        self.config = config if config is not None else QualityConfig()
        self._scale = self.config.initial_scale
        self._average_ms: float | None = None

    @property
    def scale(self) -> float:
        """Current resolution scale in [min_scale, max_scale]."""
        return self._scale

    @property
    def average_ms(self) -> float | None:
        """Smoothed frame time, or None before the first frame."""
        return self._average_ms

    def reset(self) -> None:
        """Forget timing history and return to the initial scale."""
        self._scale = self.config.initial_scale
        self._average_ms = None

    def update(self, frame_ms: float) -> float:
        """Fold in one frame time and adjust the scale.

        Args:
            frame_ms: Wall-clock duration of the last frame in milliseconds.

        Returns:
            The new scale.

        Raises:
            ValueError: If frame_ms is negative or not finite.
        """
        if not math.isfinite(frame_ms) or frame_ms < 0.0:
            raise ValueError(f"frame_ms must be finite and non-negative, got {frame_ms}")

        cfg = self.config
        if self._average_ms is None:
            self._average_ms = frame_ms
        else:
            self._average_ms = cfg.smoothing * frame_ms + (1.0 - cfg.smoothing) * self._average_ms

        avg = self._average_ms
        if avg <= 0.0:
            factor = 1.0 + cfg.max_step
        else:
            ratio = cfg.target_ms / avg
            if abs(1.0 - ratio) <= cfg.deadband:
                return self._scale
            factor = min(1.0 + cfg.max_step, max(1.0 - cfg.max_step, math.sqrt(ratio)))

        previous = self._scale
        self._scale = min(cfg.max_scale, max(cfg.min_scale, self._scale * factor))
        if self._scale != previous:
            logger.debug(
                "Resolution scale %.3f -> %.3f (avg %.2f ms, target %.2f ms)",
                previous,
                self._scale,
                avg,
                cfg.target_ms,
            )
        return self._scale

    def internal_resolution(self, width: int, height: int) -> tuple[int, int]:
        """Internal render size for a display size at the current scale."""
        return (
            max(1, int(round(width * self._scale))),
            max(1, int(round(height * self._scale))),
        )
