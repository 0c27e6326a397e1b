# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Reassembly of ``FlightData`` frames into an Arrow IPC stream.

A ``DoGet`` response is a sequence of ``FlightData`` messages.  Each carries
the flatbuffer ``Message`` header of one IPC message (``data_header``) and its
raw buffers (``data_body``), but none of the IPC stream framing.  This module
restores that framing so ``pyarrow.ipc.open_stream`` can read the result
without any Flight-specific knowledge.

Message block layout (all integers little-endian)
-------------------------------------------------
::

    Offset        Size   Field
    0             4      continuation marker: 0xFFFFFFFF
    4             4      header length: uint32 = len(header)
    8             H      header bytes (flatbuffer Message)
    8 + H         P      zero padding, 0 <= P < 8, (8 + H + P) % 8 == 0
    8 + H + P     B      body bytes, copied verbatim (no trailing padding)

Blocks are concatenated in frame arrival order.  No end-of-stream marker is
appended; the IPC reader treats a clean EOF as end of stream.
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

import pyarrow as pa
from pyarrow import ipc

from flightsql_client.flight._common import ProtocolError
from flightsql_client.flight._debug import fmt_frame, fmt_schema, wire_frame_logger

__all__ = [
    "CONTINUATION_MARKER",
    "Frame",
    "ReassembledStream",
    "frames_from_table",
    "message_block",
    "padding_for",
    "reassemble",
]

CONTINUATION_MARKER: Final = 0xFFFFFFFF
_ALIGNMENT: Final = 8

# continuation(I), header_length(I)
_PREFIX_STRUCT = struct.Struct("<II")
assert _PREFIX_STRUCT.size == 8

_EMPTY_SCHEMA = pa.schema([])


@dataclass(frozen=True)
class Frame:
    """One unit of a ``DoGet`` / ``DoPut`` stream.

    Attributes:
        header: Flatbuffer IPC message header, or ``None`` for frames that
            carry no IPC message (e.g. metadata-only frames).
        body: Raw columnar buffers of the message; empty for schema messages.
        app_metadata: Application metadata attached to the ``FlightData``.

    """

    header: bytes | None
    body: bytes = b""
    app_metadata: bytes = b""


def padding_for(header_length: int) -> int:
    """Return the zero padding that follows a header of *header_length* bytes.

    The 8-byte prefix plus the header plus the padding is always a multiple
    of 8, so the body starts 8-byte aligned.
    """
    return -header_length % _ALIGNMENT


def message_block(header: bytes, body: bytes = b"") -> bytes:
    """Frame a single IPC message: marker, length, header, padding, body."""
    return b"".join(
        (
            _PREFIX_STRUCT.pack(CONTINUATION_MARKER, len(header)),
            header,
            b"\x00" * padding_for(len(header)),
            body,
        )
    )


@dataclass(frozen=True)
class ReassembledStream:
    """A byte-exact Arrow IPC stream rebuilt from ordered frames.

    Attributes:
        data: The concatenated message blocks.
        message_count: Number of frames that produced a message block.

    """

    data: bytes
    message_count: int

    @property
    def is_empty(self) -> bool:
        """Whether no message was reassembled (no schema, no rows)."""
        return self.message_count == 0

    def to_reader(self) -> pa.RecordBatchReader:
        """Open a record batch reader over the stream.

        Raises:
            ProtocolError: If the bytes are not a readable IPC stream.

        """
        if self.is_empty:
            return pa.RecordBatchReader.from_batches(_EMPTY_SCHEMA, [])
        try:
            return ipc.open_stream(pa.py_buffer(self.data))
        except pa.ArrowException as exc:
            raise ProtocolError(f"Failed to decode Arrow IPC stream: {exc}") from exc

    def to_table(self) -> pa.Table:
        """Decode the whole stream into a table.

        An empty stream decodes to an empty table with no columns.

        Raises:
            ProtocolError: If the bytes are not a readable IPC stream.

        """
        if self.is_empty:
            return pa.Table.from_batches([], schema=_EMPTY_SCHEMA)
        reader = self.to_reader()
        try:
            table = reader.read_all()
        except pa.ArrowException as exc:
            raise ProtocolError(f"Failed to decode Arrow IPC stream: {exc}") from exc
        if wire_frame_logger.isEnabledFor(logging.DEBUG):
            wire_frame_logger.debug(
                "Decoded stream: rows=%d, schema=%s, bytes=%d",
                table.num_rows,
                fmt_schema(table.schema),
                len(self.data),
            )
        return table


def reassemble(frames: Iterable[Frame]) -> ReassembledStream:
    """Concatenate framed IPC messages for *frames*, in order.

    Frames whose header is ``None`` or empty are skipped and contribute no
    bytes.

    Args:
        frames: Frames in arrival order.

    Returns:
        The reassembled stream; empty when no frame carried a header.

    """
    blocks: list[bytes] = []
    skipped = 0
    for frame in frames:
        if not frame.header:
            skipped += 1
            if wire_frame_logger.isEnabledFor(logging.DEBUG):
                wire_frame_logger.debug("Skip headerless frame: %s", fmt_frame(frame))
            continue
        blocks.append(message_block(frame.header, frame.body))
    if wire_frame_logger.isEnabledFor(logging.DEBUG):
        wire_frame_logger.debug("Reassembled %d messages (%d frames skipped)", len(blocks), skipped)
    return ReassembledStream(b"".join(blocks), len(blocks))


def frames_from_table(table: pa.Table, *, max_chunksize: int | None = None) -> list[Frame]:
    """Split a table into the frames a Flight server would send for it.

    The table is written as an IPC stream and every message (schema,
    dictionaries, record batches) becomes one frame; the end-of-stream
    marker produces none.  This is the inverse of :func:`reassemble` and the
    input shape expected by ``FlightSession.do_put``.

    Args:
        table: Data to split.
        max_chunksize: Maximum rows per record batch message.

    Returns:
        Frames in stream order, schema first.

    """
    sink = pa.BufferOutputStream()
    with ipc.new_stream(sink, table.schema) as writer:
        writer.write_table(table, max_chunksize=max_chunksize)
    reader = ipc.MessageReader.open_stream(sink.getvalue())
    frames: list[Frame] = []
    while True:
        try:
            message = reader.read_next_message()
        except StopIteration:
            break
        body = message.body
        frames.append(Frame(message.metadata.to_pybytes(), b"" if body is None else body.to_pybytes()))
    return frames
