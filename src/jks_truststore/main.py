"""
Application entry point — wires dependencies and runs the CLI.

Composition root: creates concrete adapters and hands them to the
TrustStoreResource or the pipeline. This is the ONLY place where concrete
classes are instantiated (the ASGI app reuses `create_adapters`).

Commands:
  create   build from PEM files, persist state, optionally write the .jks
  read     rebuild with the persisted timestamp, refresh state
  delete   clear persisted state
  inspect  decode a .jks file and list its entries

stdout carries the command's JSON result; logs go to stderr.
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, TypeAlias

import structlog
from cryptography import x509

from jks_truststore import __version__
from jks_truststore.adapters.jks_codec import JksTrustStoreDecoder, JksTrustStoreEncoder
from jks_truststore.adapters.pem_decoder import PemCertificateDecoder
from jks_truststore.adapters.state_file import JsonStateRepository
from jks_truststore.config import AppSettings, load_settings
from jks_truststore.domain.models import BuildRequest, CertificateChainInput, TrustStore, TrustStoreState
from jks_truststore.railway import ErrorCode, FailureDescription
from jks_truststore.railway.result import Result
from jks_truststore.resource import TrustStoreResource


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for structured, human-readable logging on stderr.

    stdout is reserved for command output so it can be piped into other tools.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


_Adapters: TypeAlias = tuple[PemCertificateDecoder, JksTrustStoreEncoder]


def create_adapters() -> _Adapters:
    """Instantiate the stateless pipeline adapters."""
    return PemCertificateDecoder(), JksTrustStoreEncoder()


def create_resource(settings: AppSettings, state_path: Path | None = None) -> TrustStoreResource:
    """Wire a TrustStoreResource backed by the JSON state file."""
    decoder, encoder = create_adapters()
    return TrustStoreResource(
        decoder=decoder,
        encoder=encoder,
        repository=JsonStateRepository(state_path or settings.state.path),
        certificate_type=settings.truststore.certificate_type,
    )


# ─────────────────────── Argument Parsing ───────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jks-truststore",
        description="Build reproducible JKS trust stores from PEM certificate chains",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--state",
        type=Path,
        default=None,
        help="State file path (default: STATE__PATH or truststore.state.json)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("create", "Build a trust store and persist its state"),
        ("read", "Rebuild with the persisted timestamp and refresh state"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument(
            "--cert",
            dest="certs",
            type=Path,
            action="append",
            required=True,
            help="PEM file holding one or more certificates; repeat in alias order",
        )
        command.add_argument(
            "--output",
            type=Path,
            default=None,
            help="Write the binary .jks trust store to this path",
        )

    commands.add_parser("delete", help="Clear the persisted state")

    inspect = commands.add_parser("inspect", help="List the entries of a .jks trust store")
    inspect.add_argument("jks", type=Path, help="JKS file to decode")

    return parser


# ─────────────────────── Commands ───────────────────────


def _read_chains(paths: Sequence[Path]) -> Result[CertificateChainInput]:
    return Result.from_computation(
        lambda: CertificateChainInput.of(path.read_text(encoding="utf-8") for path in paths),
        ErrorCode.DECODE_ERROR,
        "Failed to read certificate files",
    )


def _write_output(state: TrustStoreState, output: Path | None) -> Result[TrustStoreState]:
    if output is None:
        return Result.success(state)

    def _write() -> TrustStoreState:
        output.write_bytes(base64.standard_b64decode(state.jks))
        return state

    return Result.from_computation(
        _write,
        ErrorCode.PERSIST_ERROR,
        f"Failed to write trust store to {output}",
    )


def _describe_store(store: TrustStore) -> dict[str, Any]:
    entries = []
    for entry in store.entries:
        subject = x509.load_der_x509_certificate(entry.certificate.der).subject.rfc4514_string()
        entries.append(
            {
                "alias": entry.alias,
                "created_at": entry.created_at.isoformat(),
                "type": entry.certificate_type,
                "subject": subject,
            }
        )
    return {"entries": entries, "verified": store.is_sealed}


def _run_command(args: argparse.Namespace, settings: AppSettings) -> Result[dict[str, Any]]:
    password = settings.truststore.password.get_secret_value()

    if args.command == "inspect":
        return (
            Result.from_computation(
                args.jks.read_bytes,
                ErrorCode.DECODE_ERROR,
                f"Failed to read {args.jks}",
            )
            .flat_map(lambda data: JksTrustStoreDecoder().decode(data, password))
            .flat_map(
                lambda store: Result.from_computation(
                    lambda: _describe_store(store),
                    ErrorCode.DECODE_ERROR,
                    "Trust store holds an unreadable certificate",
                )
            )
        )

    resource = create_resource(settings, args.state)

    if args.command == "delete":
        return resource.delete().map(lambda existed: {"deleted": existed})

    lifecycle = resource.create if args.command == "create" else resource.read
    return (
        _read_chains(args.certs)
        .map(lambda chains: BuildRequest(certificates=chains, password=password))
        .flat_map(lifecycle)
        .flat_map(lambda state: _write_output(state, args.output))
        .map(lambda state: {"id": state.id, "timestamp": state.timestamp})
    )


def _report_failure(failure: FailureDescription) -> int:
    print(json.dumps({"error": failure.code.value, "message": failure.message}), file=sys.stderr)  # noqa: T201
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, wire dependencies, run one command. Returns the exit code."""
    args = _build_parser().parse_args(argv)

    loaded = load_settings()
    if loaded.is_failure():
        _report_failure(loaded.error())
        return 2
    settings = loaded.value()

    configure_structlog(settings.log_level)
    log = structlog.get_logger()
    log.info("app.command", command=args.command, version=__version__)

    result = _run_command(args, settings)
    if result.is_failure():
        failure = result.error()
        log.error("app.command_failed", command=args.command, code=failure.code.value, error=failure.message)
        return _report_failure(failure)

    print(json.dumps(result.value(), indent=2))  # noqa: T201
    return 0


if __name__ == "__main__":
    sys.exit(main())
