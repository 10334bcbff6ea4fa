"""
XMP 메타데이터 문서 생성.

JPEG APP1 삽입과 RAW sidecar(.xmp) 양쪽에 같은 문서를 사용.

출력 규칙:
- dc:title = 프로젝트명 (항상)
- xmp:Rating = 1..5일 때만 (0/범위 밖은 속성 자체 생략)
- xmp:Label = group_number 1..5 → Red/Yellow/Green/Blue/Purple
- dc:description = 비어 있지 않을 때만
- dc:subject (rdf:Bag) = 키워드가 있을 때만, 순서 유지
- 사용자 입력 텍스트는 모두 XML 이스케이프
"""

from src.domain.constants import COLOR_LABELS, RATING_MAX, RATING_MIN
from src.domain.schemas import ImageRecord

_XML_ESCAPES = (
    ("&", "&amp;"),  # 반드시 첫 번째
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)

_PACKET_TEMPLATE = """<?xpacket begin="" id="W5M0MpCehiHzreSzNTczkc9d"?>
<x:xmpmeta xmlns:x="adobe:ns:meta/" x:xmptk="XMP Core 5.6.0">
 <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
  <rdf:Description rdf:about=""
   xmlns:dc="http://purl.org/dc/elements/1.1/"
   xmlns:xmp="http://ns.adobe.com/xap/1.0/"
{attributes}  >
   <dc:title>
    <rdf:Alt>
     <rdf:li xml:lang="x-default">{title}</rdf:li>
    </rdf:Alt>
   </dc:title>
{elements}  </rdf:Description>
 </rdf:RDF>
</x:xmpmeta>
<?xpacket end="w"?>"""


def escape_xml(text: str) -> str:
    """XML 특수문자 5종 이스케이프."""
    for raw, entity in _XML_ESCAPES:
        text = text.replace(raw, entity)
    return text


def color_label(group_number: int) -> str | None:
    """그룹 번호 → 컬러 라벨 (1..5 외에는 None)."""
    return COLOR_LABELS.get(group_number)


def _attributes(record: ImageRecord) -> str:
    lines = []
    label = color_label(record.group_number)
    if label:
        lines.append(f'   xmp:Label="{label}"\n')
    if RATING_MIN <= record.rating <= RATING_MAX:
        lines.append(f'   xmp:Rating="{record.rating}"\n')
    return "".join(lines)


def _elements(record: ImageRecord) -> str:
    xml = ""
    if record.keywords:
        xml += "   <dc:subject>\n    <rdf:Bag>\n"
        for keyword in record.keywords:
            xml += f"     <rdf:li>{escape_xml(keyword)}</rdf:li>\n"
        xml += "    </rdf:Bag>\n   </dc:subject>\n"

    if record.description:
        xml += (
            "   <dc:description>\n    <rdf:Alt>\n"
            f'     <rdf:li xml:lang="x-default">{escape_xml(record.description)}</rdf:li>\n'
            "    </rdf:Alt>\n   </dc:description>\n"
        )
    return xml


def render_xmp(record: ImageRecord, project_name: str) -> str:
    """
    이미지 한 장의 XMP 문서 생성.

    Args:
        record: 이미지 레코드 (읽기 전용)
        project_name: dc:title에 들어갈 프로젝트명

    Returns:
        XMP packet 문자열 (동일 입력 → 동일 출력)
    """
    return _PACKET_TEMPLATE.format(
        attributes=_attributes(record),
        title=escape_xml(project_name),
        elements=_elements(record),
    )
