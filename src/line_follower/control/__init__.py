"""Tracking controller and motor PWM model."""

from line_follower.control.pid import PIDController, PIDGains, PIDTerms
from line_follower.control.pwm import PWMConfig, PWMSimulator

__all__ = ["PIDController", "PIDGains", "PIDTerms", "PWMConfig", "PWMSimulator"]
