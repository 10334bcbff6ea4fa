"""
App layer: export API 서버 (FastAPI).

역할:
- export 실행 요청, 아카이브 목록/다운로드/삭제
- ⚠️ export 로직 없음 (core에 위임)
"""
