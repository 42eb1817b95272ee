"""
Result envelope and export to JSON, CSV and text.
"""

import csv
import io
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .certificate import CertificateParser
from .errors import ErrorCode, ErrorType, NetTraceError
from .models import DNSResult, PingResult, SSLResult, TraceHop, WHOISResult, to_jsonable
from .output import OutputFormatter, TextFormatter


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    TEXT = "text"

    @classmethod
    def parse(cls, value: Union["ExportFormat", str]) -> "ExportFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise _export_error(
                ErrorCode.EXPORT_UNSUPPORTED, f"unsupported export format: {value}", format=str(value)
            ) from None


def _export_error(code: ErrorCode, message: str, cause: Optional[BaseException] = None, **context: Any) -> NetTraceError:
    return NetTraceError(
        message=message,
        error_type=ErrorType.EXPORT,
        code=code,
        cause=cause,
        context=context,
    )


def _fmt_float(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.3f}"


def _fmt_time(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else ""


def _ping_rows(results: Sequence[PingResult]) -> List[List[Any]]:
    rows: List[List[Any]] = [["timestamp", "host", "sequence", "rtt_ms", "ttl", "packet_size", "error"]]
    for r in results:
        rows.append([
            _fmt_time(r.timestamp),
            r.host.ip,
            r.sequence,
            _fmt_float(r.rtt_ms),
            "" if r.ttl is None else r.ttl,
            r.packet_size,
            r.error or "",
        ])
    return rows


def _trace_rows(hops: Sequence[TraceHop]) -> List[List[Any]]:
    width = max((len(hop.rtts_ms) for hop in hops), default=0)
    header = ["hop", "hostname", "ip_address"]
    header.extend(f"rtt{i}_ms" for i in range(1, width + 1))
    header.append("timeout")

    rows: List[List[Any]] = [header]
    for hop in hops:
        rtts = [_fmt_float(rtt) for rtt in hop.rtts_ms]
        rtts.extend([""] * (width - len(rtts)))
        rows.append([
            hop.number,
            hop.host.hostname if hop.host else "",
            hop.host.ip if hop.host else "",
            *rtts,
            str(hop.timeout).lower(),
        ])
    return rows


def _dns_rows(result: DNSResult) -> List[List[Any]]:
    rows: List[List[Any]] = [["name", "type", "value", "ttl", "priority"]]
    for record in result.records:
        rows.append([
            record.name,
            record.type.value,
            record.value,
            record.ttl,
            "" if record.priority is None else record.priority,
        ])
    return rows


def _whois_rows(result: WHOISResult) -> List[List[Any]]:
    rows: List[List[Any]] = [
        ["field", "value"],
        ["domain", result.domain],
        ["registrar", result.registrar],
        ["created", _fmt_time(result.created)],
        ["updated", _fmt_time(result.updated)],
        ["expires", _fmt_time(result.expires)],
        ["server", result.server],
    ]
    rows.extend(["name_server", ns] for ns in result.name_servers)
    rows.extend(["status", status] for status in result.status)
    return rows


def _ssl_rows(result: SSLResult) -> List[List[Any]]:
    rows: List[List[Any]] = [
        ["field", "value"],
        ["host", result.host],
        ["port", result.port],
        ["valid", str(result.valid).lower()],
        ["subject", result.subject],
        ["issuer", result.issuer],
        ["expiry", _fmt_time(result.expiry)],
        ["tls_version", result.tls_version or ""],
        ["chain_length", len(result.chain)],
    ]
    if result.certificate is not None:
        rows.append(["fingerprint_sha256", CertificateParser.summarize(result.certificate)["fingerprint_sha256"]])
    rows.extend(["san", name] for name in result.san)
    rows.extend(["error", message] for message in result.errors)
    return rows


def _mapping_rows(data: Mapping[str, Any]) -> List[List[Any]]:
    rows: List[List[Any]] = [["key", "value"]]
    for key, value in data.items():
        jsonable = to_jsonable(value)
        if isinstance(jsonable, (dict, list)):
            jsonable = json.dumps(jsonable, ensure_ascii=False)
        rows.append([key, "" if jsonable is None else jsonable])
    return rows


def csv_rows(data: Any) -> List[List[Any]]:
    """
    Tabular projection of a result payload.

    Raises:
        NetTraceError: export-typed, for data without a CSV projection
    """
    if isinstance(data, DNSResult):
        return _dns_rows(data)
    if isinstance(data, WHOISResult):
        return _whois_rows(data)
    if isinstance(data, SSLResult):
        return _ssl_rows(data)
    if isinstance(data, Mapping):
        return _mapping_rows(data)
    if isinstance(data, (list, tuple)):
        if not data:
            return []
        if all(isinstance(item, PingResult) for item in data):
            return _ping_rows(data)
        if all(isinstance(item, TraceHop) for item in data):
            return _trace_rows(data)
    raise _export_error(
        ErrorCode.EXPORT_UNSUPPORTED,
        f"CSV export not supported for {type(data).__name__}",
        data_type=type(data).__name__,
    )


class Result:
    """
    Output of a diagnostic tool: a typed payload plus free-form metadata.
    """

    def __init__(
        self,
        data: Any,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ):
        self._data = data
        self._metadata: Dict[str, Any] = dict(metadata or {})
        self.timestamp = timestamp or datetime.now(timezone.utc)

    def data(self) -> Any:
        return self._data

    def metadata(self) -> Dict[str, Any]:
        return self._metadata

    def set_metadata(self, key: str, value: Any) -> None:
        self._metadata[key] = value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": to_jsonable(self._data),
            "metadata": to_jsonable(self._metadata),
            "timestamp": self.timestamp.isoformat(),
        }

    def format(self, formatter: Optional[OutputFormatter] = None) -> str:
        return (formatter or TextFormatter()).format(self)

    def export(self, fmt: Union[ExportFormat, str]) -> bytes:
        """
        Serialize the result.

        Args:
            fmt: Target format

        Returns:
            UTF-8 encoded document

        Raises:
            NetTraceError: export-typed, for unsupported formats or data
        """
        fmt = ExportFormat.parse(fmt)
        if fmt == ExportFormat.JSON:
            try:
                text = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise _export_error(ErrorCode.EXPORT_FAILED, "JSON export failed", cause=e) from e
            return text.encode("utf-8")

        if fmt == ExportFormat.CSV:
            buffer = io.StringIO()
            writer = csv.writer(buffer, lineterminator="\n")
            writer.writerows(csv_rows(self._data))
            return buffer.getvalue().encode("utf-8")

        return self.format(TextFormatter()).encode("utf-8")

    @classmethod
    def from_json(cls, payload: Union[bytes, str]) -> "Result":
        """Rebuild a result from a JSON export; the payload stays in JSON form."""
        try:
            document = json.loads(payload)
        except ValueError as e:
            raise _export_error(ErrorCode.EXPORT_FAILED, "invalid JSON result document", cause=e) from e
        if not isinstance(document, dict) or "data" not in document:
            raise _export_error(ErrorCode.EXPORT_FAILED, "JSON result document has no data field")

        timestamp = None
        if document.get("timestamp"):
            timestamp = datetime.fromisoformat(document["timestamp"])
        return cls(document["data"], document.get("metadata") or {}, timestamp)
