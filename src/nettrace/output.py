"""
Human-readable rendering and file output.
"""

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Mapping, Protocol, Sequence, Union

from .models import DNSResult, PingResult, SSLResult, TraceHop, WHOISResult, to_jsonable

if TYPE_CHECKING:
    from .result import Result

HEADER = "=== NetTrace Result ==="


class OutputFormatter(Protocol):
    def format(self, result: "Result") -> str:
        ...


def _ms(value) -> str:
    return "*" if value is None else f"{value:.2f} ms"


class TextFormatter:
    """
    Plain-text rendering of a result, one section per payload type.
    """

    def format(self, result: "Result") -> str:
        lines: List[str] = [HEADER, f"Timestamp: {result.timestamp.isoformat()}", ""]
        lines.extend(self.render(result.data()))

        metadata = result.metadata()
        if metadata:
            lines.append("")
            lines.append("Metadata:")
            for key, value in metadata.items():
                jsonable = to_jsonable(value)
                if isinstance(jsonable, (dict, list)):
                    jsonable = json.dumps(jsonable, ensure_ascii=False)
                lines.append(f"  {key}: {jsonable}")
        return "\n".join(lines) + "\n"

    def render(self, data: Any) -> List[str]:
        if isinstance(data, DNSResult):
            return self._dns(data)
        if isinstance(data, WHOISResult):
            return self._whois(data)
        if isinstance(data, SSLResult):
            return self._ssl(data)
        if isinstance(data, (list, tuple)) and data:
            if all(isinstance(item, PingResult) for item in data):
                return self._ping(data)
            if all(isinstance(item, TraceHop) for item in data):
                return self._trace(data)
        if isinstance(data, Mapping):
            return [f"{key}: {to_jsonable(value)}" for key, value in data.items()]
        return [json.dumps(to_jsonable(data), indent=2, ensure_ascii=False)]

    @staticmethod
    def _ping(results: Sequence[PingResult]) -> List[str]:
        host = results[0].host
        lines = [f"PING {host.hostname} ({host.ip})"]
        for r in results:
            if r.success:
                lines.append(
                    f"{r.packet_size} bytes from {r.host.ip}: seq={r.sequence} ttl={r.ttl} time={_ms(r.rtt_ms)}"
                )
            else:
                lines.append(f"seq={r.sequence}: {r.error}")
        return lines

    @staticmethod
    def _trace(hops: Sequence[TraceHop]) -> List[str]:
        lines = []
        for hop in hops:
            rtts = "  ".join(_ms(rtt) for rtt in hop.rtts_ms)
            if hop.host is None:
                lines.append(f"{hop.number:>3}  {rtts}")
            elif hop.host.hostname and hop.host.hostname != hop.host.ip:
                lines.append(f"{hop.number:>3}  {hop.host.hostname} ({hop.host.ip})  {rtts}")
            else:
                lines.append(f"{hop.number:>3}  {hop.host.ip}  {rtts}")
        return lines

    @staticmethod
    def _dns(result: DNSResult) -> List[str]:
        lines = [
            f"Query: {result.query}",
            f"Server: {result.server}",
            f"Response time: {_ms(result.response_time_ms)}",
            f"Records ({len(result.records)}):",
        ]
        for record in result.records:
            priority = f" {record.priority}" if record.priority is not None else ""
            lines.append(f"  {record.name}\t{record.ttl}\t{record.type.value}{priority}\t{record.value}")
        return lines

    @staticmethod
    def _whois(result: WHOISResult) -> List[str]:
        lines = [f"Domain: {result.domain}", f"Server: {result.server}"]
        if result.registrar:
            lines.append(f"Registrar: {result.registrar}")
        for label, value in (("Created", result.created), ("Updated", result.updated), ("Expires", result.expires)):
            if value is not None:
                lines.append(f"{label}: {value.isoformat()}")
        if result.name_servers:
            lines.append("Name servers:")
            lines.extend(f"  {ns}" for ns in result.name_servers)
        if result.status:
            lines.append("Status:")
            lines.extend(f"  {status}" for status in result.status)
        for role, contact in result.contacts.items():
            details = ", ".join(v for v in (contact.name, contact.organization, contact.email) if v)
            if details:
                lines.append(f"{role.capitalize()}: {details}")
        return lines

    @staticmethod
    def _ssl(result: SSLResult) -> List[str]:
        lines = [
            f"Host: {result.host}:{result.port}",
            f"Valid: {'yes' if result.valid else 'no'}",
            f"Subject: {result.subject}",
            f"Issuer: {result.issuer}",
        ]
        if result.expiry is not None:
            lines.append(f"Expires: {result.expiry.isoformat()}")
        if result.tls_version:
            lines.append(f"TLS version: {result.tls_version}")
        lines.append(f"Chain length: {len(result.chain)}")
        if result.san:
            lines.append(f"SAN: {', '.join(result.san)}")
        if result.errors:
            lines.append("Findings:")
            lines.extend(f"  - {message}" for message in result.errors)
        return lines


def write_output(path: Union[str, Path], data: bytes) -> None:
    """
    Write exported data to a file atomically.

    Args:
        path: Destination file
        data: Encoded document
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    temp_path = output_path.with_suffix(output_path.suffix + ".tmp")
    try:
        temp_path.write_bytes(data)
        temp_path.replace(output_path)
        output_path.chmod(0o600)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise IOError(f"Failed to write output file: {e}") from e


def write_stdout(data: bytes) -> None:
    """Write exported data to stdout."""
    text = data.decode("utf-8")
    sys.stdout.write(text if text.endswith("\n") else text + "\n")
    sys.stdout.flush()
