"""
Exceptions raised by the analysis pipeline.

Every failure is fatal: the pipeline is deterministic given its seed and
inputs, so nothing here is retried.
"""


class PipelineError(Exception):
    """Base class for pipeline failures."""


class SchemaError(PipelineError):
    """Input table is missing expected columns or carries unknown labels."""


class DegenerateFoldError(PipelineError):
    """A cross-validation fold cannot be scored meaningfully."""


class NumericError(PipelineError):
    """A score came out infinite or NaN."""


class ZeroProbabilityError(NumericError):
    """A model assigned probability 0 to the true class of some rows."""

    def __init__(self, rows):
        self.rows = list(rows)
        preview = ", ".join(str(r) for r in self.rows[:10])
        more = "..." if len(self.rows) > 10 else ""
        super().__init__(
            f"Zero probability for the true class in {len(self.rows)} row(s): "
            f"{preview}{more}"
        )
