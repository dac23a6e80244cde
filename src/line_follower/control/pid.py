"""PID/PD tracking controller with anti-windup, spike clamp and slip scaling."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass

INTEGRAL_LIMIT = 100.0
MAX_CORRECTION = 1000.0
SLIP_THRESHOLD = 5.0

# Auto-adjust step (contractual constants).
AUTO_TUNE_OSCILLATION_THRESHOLD = 3.0
KP_DECAY = 0.9
KD_GROWTH = 1.05
SLIP_GAIN_STEP = 0.05

REFERENCE_VELOCITY = 200.0


@dataclass(frozen=True)
class PIDGains:
    """Controller gains.  Immutable; replace through :meth:`PIDController.set_gains`."""

    kp: float = 2.0
    """Proportional gain."""

    ki: float = 0.0
    """Integral gain (only used when the integral term is enabled)."""

    kd: float = 0.9
    """Derivative gain."""

    kslip: float = 0.0
    """Slip gain: the correction is divided by ``1 + kslip`` beyond the slip threshold."""


@dataclass(frozen=True)
class PIDTerms:
    """Individual contributions from the most recent :meth:`PIDController.calculate`."""

    proportional: float = 0.0
    integral: float = 0.0
    derivative: float = 0.0


class PIDController:
    """Turns a signed tracking error into a steering correction.

    Gains are adjustable at runtime but never clamped here; range limits are
    the caller's concern.  :meth:`reset` clears the error history only.

    Args:
        gains: Initial gains.
        use_integral: Enable the integral term.
        integral_limit: Anti-windup bound on the accumulated ``error * dt``.
        max_correction: Absolute clamp on the output; ``None`` disables it.
        slip_threshold: ``|error|`` above which slip scaling applies;
            ``None`` disables it.
        adaptive_mode: Enable velocity-based gain scaling in
            :meth:`apply_adaptive_scaling`.
    """

    def __init__(
        self,
        gains: PIDGains | None = None,
        use_integral: bool = False,
        integral_limit: float = INTEGRAL_LIMIT,
        max_correction: float | None = MAX_CORRECTION,
        slip_threshold: float | None = SLIP_THRESHOLD,
        adaptive_mode: bool = False,
    ) -> None:
        if integral_limit < 0:
            raise ValueError("integral_limit must be >= 0")
        self._gains = gains or PIDGains()
        self._base_gains = self._gains
        self.use_integral = use_integral
        self.integral_limit = integral_limit
        self.max_correction = max_correction
        self.slip_threshold = slip_threshold
        self.adaptive_mode = adaptive_mode
        self.reference_velocity = REFERENCE_VELOCITY

        self._last_error = 0.0
        self._previous_error = 0.0
        self._accumulated_error = 0.0
        self._last_correction = 0.0
        self._last_terms = PIDTerms()

    # ------------------------------------------------------------------
    # Gains
    # ------------------------------------------------------------------

    @property
    def gains(self) -> PIDGains:
        return self._gains

    @property
    def kp(self) -> float:
        return self._gains.kp

    @property
    def ki(self) -> float:
        return self._gains.ki

    @property
    def kd(self) -> float:
        return self._gains.kd

    @property
    def kslip(self) -> float:
        return self._gains.kslip

    def set_gains(
        self,
        kp: float | None = None,
        ki: float | None = None,
        kd: float | None = None,
        kslip: float | None = None,
    ) -> PIDGains:
        """Replace any subset of the gains and return the new set.

        Manual changes also become the base for adaptive scaling.

        Raises:
            ValueError: If a value is not a finite number.
        """
        updates = {
            name: value
            for name, value in (("kp", kp), ("ki", ki), ("kd", kd), ("kslip", kslip))
            if value is not None
        }
        for name, value in updates.items():
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value!r}")
        self._gains = dataclasses.replace(self._gains, **updates)
        self._base_gains = self._gains
        return self._gains

    # ------------------------------------------------------------------
    # Control law
    # ------------------------------------------------------------------

    @property
    def last_error(self) -> float:
        return self._last_error

    @property
    def accumulated_error(self) -> float:
        """Anti-windup-clamped running sum of ``error * dt``."""
        return self._accumulated_error

    @property
    def last_correction(self) -> float:
        return self._last_correction

    @property
    def last_terms(self) -> PIDTerms:
        return self._last_terms

    def calculate(self, error: float, delta_time_ms: float) -> float:
        """Return the correction for *error* after a tick of *delta_time_ms* ms."""
        dt = delta_time_ms / 1000.0
        g = self._gains

        proportional = g.kp * error

        integral = 0.0
        if self.use_integral:
            acc = self._accumulated_error + error * dt
            self._accumulated_error = min(max(acc, -self.integral_limit), self.integral_limit)
            integral = g.ki * self._accumulated_error

        derivative = 0.0
        if dt > 0:
            derivative = g.kd * (error - self._last_error) / dt

        correction = proportional + integral + derivative
        if self.max_correction is not None:
            correction = min(max(correction, -self.max_correction), self.max_correction)

        # Discontinuous at the threshold on purpose: the whole correction is scaled.
        if self.slip_threshold is not None and abs(error) > self.slip_threshold:
            correction /= 1.0 + g.kslip

        self._previous_error = self._last_error
        self._last_error = error
        self._last_correction = correction
        self._last_terms = PIDTerms(proportional, integral, derivative)
        return correction

    def reset(self) -> None:
        """Clear error history and the integral; gains are kept."""
        self._last_error = 0.0
        self._previous_error = 0.0
        self._accumulated_error = 0.0
        self._last_correction = 0.0
        self._last_terms = PIDTerms()

    # ------------------------------------------------------------------
    # Heuristics
    # ------------------------------------------------------------------

    def is_oscillating(self, error: float, threshold: float = 5.0) -> bool:
        """True when *error* differs from the last calculated error by more than *threshold*."""
        return abs(error - self._last_error) > threshold

    def auto_adjust(self, error: float, slipping: bool) -> PIDGains:
        """Bounded adaptive step, run right after :meth:`calculate` for the same *error*.

        Oscillation is judged on the change over the latest tick.  When
        oscillating, Kp is multiplied by 0.9 and Kd by 1.05; when *slipping*,
        the slip gain grows by 0.05.  Gains are not clamped here.
        """
        g = self._gains
        kp, kd, kslip = g.kp, g.kd, g.kslip
        if abs(error - self._previous_error) > AUTO_TUNE_OSCILLATION_THRESHOLD:
            kp *= KP_DECAY
            kd *= KD_GROWTH
        if slipping:
            kslip += SLIP_GAIN_STEP
        self._gains = dataclasses.replace(g, kp=kp, kd=kd, kslip=kslip)
        return self._gains

    def apply_adaptive_scaling(self, velocity: float) -> None:
        """Rescale Kp and Kd from the base gains for the current *velocity*.

        ``Kp = Kp_base * clamp((v / v_ref) ** -0.6, 0.3, 1.5)`` and
        ``Kd = Kd_base * clamp((v / v_ref) ** 0.4, 0.5, 2.0)``.  No-op when
        adaptive mode is off or *velocity* is not positive.
        """
        if not self.adaptive_mode or velocity <= 0:
            return
        relative = velocity / self.reference_velocity
        kp_factor = min(max(1.0 / relative**0.6, 0.3), 1.5)
        kd_factor = min(max(relative**0.4, 0.5), 2.0)
        self._gains = dataclasses.replace(
            self._gains,
            kp=self._base_gains.kp * kp_factor,
            kd=self._base_gains.kd * kd_factor,
        )

    def diagnose(self, error: float) -> str:
        """One-line tracking diagnosis for *error*.

        The oscillation check compares *error* with :attr:`last_error`. Called
        after :meth:`calculate` for the same error, that difference is zero,
        so the "Oscillating" verdict only appears when *error* differs from
        the last value the controller saw.
        """
        if abs(error) < 2:
            return "Tracking good"
        if self.is_oscillating(error, AUTO_TUNE_OSCILLATION_THRESHOLD):
            return "Oscillating: lower Kp or raise Kd"
        if abs(error) > 10:
            return "Slow response: raise Kp"
        return "Fine tuning needed"
