"""
Railway-Oriented Programming primitives used across the trust-store pipeline.

    from jks_truststore.railway import ErrorCode, Result

    def require_chains(chains: tuple[str, ...]) -> Result[tuple[str, ...]]:
        if not chains:
            return Result.failure(ErrorCode.EMPTY_INPUT, "no certificates supplied")
        return Result.success(chains)
"""

from jks_truststore.railway.assertions import ResultAssertions
from jks_truststore.railway.failure import ErrorCode, FailureDescription
from jks_truststore.railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ResultAssertions",
]
