"""
JPEG 세그먼트 편집: XMP APP1 삽입/교체

규칙:
- 픽셀 데이터(scan) 재인코딩 없음: 바이트 그대로 보존
- 세그먼트 순서 유지, XMP 세그먼트만 제거/삽입
- XMP 세그먼트는 출력에 최대 1개
- 삽입 위치: SOI, APP0 다음의 첫 세그먼트 앞 (DQT/DHT/SOF/SOS보다 앞)
- length 필드는 실제 payload 길이로 재계산
- 파싱 불가 → MalformedContainer (호출자가 원본으로 fallback)

세그먼트 모델:
- marker가 있는 세그먼트: 0xFF + marker (+ length + payload)
- marker=None: SOS 뒤 entropy-coded 데이터 또는 EOI 뒤 trailing 바이트 (원본 그대로)
"""

from dataclasses import dataclass

from src.domain.constants import JPEG_MAX_SEGMENT_PAYLOAD, XMP_NAMESPACE_ID
from src.domain.errors import ErrorCodes, MalformedContainer

# =============================================================================
# Markers
# =============================================================================

SOI = 0xD8
EOI = 0xD9
SOS = 0xDA
APP0 = 0xE0
APP1 = 0xE1
TEM = 0x01
RST_MARKERS = frozenset(range(0xD0, 0xD8))

# length 필드 없는 marker
STANDALONE_MARKERS = frozenset({SOI, EOI, TEM}) | RST_MARKERS

XMP_PREFIX = XMP_NAMESPACE_ID + b"\x00"


@dataclass(frozen=True)
class Segment:
    """JPEG 스트림의 구분 단위."""
    marker: int | None
    payload: bytes = b""

    @property
    def is_scan_data(self) -> bool:
        return self.marker is None

    @property
    def is_standalone(self) -> bool:
        return self.marker in STANDALONE_MARKERS

    @property
    def is_xmp(self) -> bool:
        return self.marker == APP1 and self.payload.startswith(XMP_PREFIX)


# =============================================================================
# Parse
# =============================================================================

def _scan_end(data: bytes, pos: int) -> int:
    """
    SOS 헤더 이후 entropy-coded 데이터의 끝 위치.

    FF00 (stuffed byte), RSTn, fill byte(FF FF)는 데이터의 일부로 취급.
    다음 실제 marker의 0xFF 위치를 반환 (없으면 스트림 끝).
    """
    n = len(data)
    i = pos
    while True:
        i = data.find(b"\xff", i)
        if i == -1 or i + 1 >= n:
            return n
        nxt = data[i + 1]
        if nxt == 0xFF:
            i += 1
        elif nxt == 0x00 or nxt in RST_MARKERS:
            i += 2
        else:
            return i


def parse_segments(data: bytes) -> list[Segment]:
    """
    JPEG 바이트 → Segment 목록.

    Args:
        data: JPEG 파일 전체 바이트

    Returns:
        Segment 목록 (첫 요소는 항상 SOI)

    Raises:
        MalformedContainer: SOI 없음, marker 위치 불일치, length 잘림
    """
    if not data.startswith(b"\xff\xd8"):
        raise MalformedContainer(ErrorCodes.NOT_A_JPEG, head=data[:4].hex())

    segments = [Segment(SOI)]
    n = len(data)
    pos = 2

    while pos < n:
        if data[pos] != 0xFF:
            raise MalformedContainer(ErrorCodes.MARKER_EXPECTED, offset=pos)

        # marker 앞 fill byte
        while pos < n and data[pos] == 0xFF:
            pos += 1
        if pos >= n:
            raise MalformedContainer(ErrorCodes.TRUNCATED_SEGMENT, offset=pos)

        marker = data[pos]
        pos += 1
        if marker == 0x00:
            raise MalformedContainer(ErrorCodes.MARKER_EXPECTED, offset=pos - 2)

        if marker in STANDALONE_MARKERS:
            segments.append(Segment(marker))
            if marker == EOI:
                if pos < n:
                    segments.append(Segment(None, data[pos:]))
                break
            continue

        if pos + 2 > n:
            raise MalformedContainer(
                ErrorCodes.TRUNCATED_SEGMENT, marker=f"0x{marker:02X}", offset=pos
            )
        length = int.from_bytes(data[pos:pos + 2], "big")
        end = pos + length
        if length < 2 or end > n:
            raise MalformedContainer(
                ErrorCodes.TRUNCATED_SEGMENT,
                marker=f"0x{marker:02X}",
                offset=pos,
                length=length,
            )
        segments.append(Segment(marker, data[pos + 2:end]))
        pos = end

        if marker == SOS:
            scan_end = _scan_end(data, pos)
            if scan_end > pos:
                segments.append(Segment(None, data[pos:scan_end]))
            pos = scan_end

    return segments


# =============================================================================
# Serialize
# =============================================================================

def serialize_segments(segments: list[Segment]) -> bytes:
    """
    Segment 목록 → JPEG 바이트.

    Raises:
        MalformedContainer: payload가 length 필드 한도 초과
    """
    out = bytearray()
    for seg in segments:
        if seg.marker is None:
            out += seg.payload
        elif seg.is_standalone:
            out += bytes((0xFF, seg.marker))
        else:
            if len(seg.payload) > JPEG_MAX_SEGMENT_PAYLOAD:
                raise MalformedContainer(
                    ErrorCodes.SEGMENT_TOO_LARGE,
                    marker=f"0x{seg.marker:02X}",
                    size=len(seg.payload),
                )
            out += bytes((0xFF, seg.marker))
            out += (len(seg.payload) + 2).to_bytes(2, "big")
            out += seg.payload
    return bytes(out)


# =============================================================================
# XMP
# =============================================================================

def build_xmp_segment(xmp: str) -> Segment:
    """
    XMP 문서 → APP1 세그먼트.

    payload = 네임스페이스 식별자 + NUL + UTF-8 문서
    """
    payload = XMP_PREFIX + xmp.encode("utf-8")
    if len(payload) > JPEG_MAX_SEGMENT_PAYLOAD:
        raise MalformedContainer(
            ErrorCodes.XMP_TOO_LARGE,
            size=len(payload),
            limit=JPEG_MAX_SEGMENT_PAYLOAD,
        )
    return Segment(APP1, payload)


def replace_xmp_segment(segments: list[Segment], xmp_segment: Segment) -> list[Segment]:
    """
    기존 XMP 세그먼트 제거 후 새 세그먼트를 삽입 위치에 배치.

    입력 목록은 수정하지 않음.
    """
    result: list[Segment] = []
    inserted = False

    for seg in segments:
        if seg.is_xmp:
            continue
        if not inserted and seg.marker not in (SOI, APP0):
            result.append(xmp_segment)
            inserted = True
        result.append(seg)

    # SOI(+APP0)만 있는 스트림
    if not inserted:
        result.append(xmp_segment)

    return result


def embed_xmp(jpeg_bytes: bytes, xmp: str) -> bytes:
    """
    JPEG에 XMP 문서 삽입 (기존 XMP는 교체).

    Args:
        jpeg_bytes: 원본 JPEG
        xmp: render_xmp() 결과

    Returns:
        XMP가 삽입된 JPEG 바이트

    Raises:
        MalformedContainer: 파싱 실패 또는 XMP 크기 초과
    """
    segments = parse_segments(jpeg_bytes)
    xmp_segment = build_xmp_segment(xmp)
    return serialize_segments(replace_xmp_segment(segments, xmp_segment))


def extract_xmp(jpeg_bytes: bytes) -> str | None:
    """
    JPEG에서 XMP 문서 추출 (식별자 + NUL 제거).

    Returns:
        XMP 문자열, 없으면 None
    """
    for seg in parse_segments(jpeg_bytes):
        if seg.is_xmp:
            return seg.payload[len(XMP_PREFIX):].decode("utf-8")
    return None
