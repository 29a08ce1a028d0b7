"""Pure domain helpers for the back-office kernel."""

from backoffice_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = ["Clock", "DeterministicClock", "SystemClock"]
