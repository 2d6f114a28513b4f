"""Exception hierarchy for delivery_encoder."""


class DeliveryEncoderError(RuntimeError):
    """Base class for all errors raised by delivery_encoder."""


class EnvironmentSetupError(DeliveryEncoderError):
    """Project root, working directory or platform cannot be resolved."""


class PreconditionError(DeliveryEncoderError):
    """A required input, tool or output location is missing or unusable."""


class ProbeError(DeliveryEncoderError):
    """The probe tool could not report a usable video duration."""


class WorkerSetupError(DeliveryEncoderError):
    """A segment worker could not prepare its output directory."""


class WorkerRuntimeError(DeliveryEncoderError):
    """A segment's engine process could not be run to a successful exit."""


class SegmentsFailedError(WorkerRuntimeError):
    """One or more segments failed; the merge phase was skipped."""

    def __init__(self, failed_indices: list[int], total: int):
        self.failed_indices = failed_indices
        self.total = total
        indices = ", ".join(str(i) for i in failed_indices)
        super().__init__(f"{len(failed_indices)} of {total} segments failed (segments: {indices})")


class MergeIOError(DeliveryEncoderError):
    """A single frame could not be moved into the output directory."""


class CleanupWarning(DeliveryEncoderError):
    """Temporary segment directories could not be removed after a merge."""
