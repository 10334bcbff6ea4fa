"""
아카이브 엔트리 이름 할당.

아카이브 하나(= assemble 1회) 범위에서만 유효한 상태.
배치 간 공유 금지 → 배치마다 새 인스턴스.
"""

import posixpath


def base_name(key: str) -> str:
    """storage key의 마지막 경로 요소."""
    return posixpath.basename(key.rstrip("/")) or key


class FilenameAllocator:
    """
    중복 base name → 고유 엔트리 이름.

    같은 이름 두 번째 요청부터 {stem}_{n}{ext} (n = 2, 3, ...).
    catalog, 이미지, related 파일, sidecar 모두 같은 네임스페이스를 공유.
    """

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}
        self._issued: list[str] = []
        self._taken: set[str] = set()

    def allocate(self, name: str) -> str:
        """
        고유 이름 할당.

        Args:
            name: base name (예: scan.jpg)

        Returns:
            첫 요청이면 그대로, 이후 scan_2.jpg, scan_3.jpg ...
        """
        stem, ext = posixpath.splitext(name)
        count = self._counters.get(name, 0)
        unique = name if count == 0 else f"{stem}_{count + 1}{ext}"
        # a_2.jpg가 원래 이름으로 먼저 들어온 경우 등
        while unique in self._taken:
            count += 1
            unique = f"{stem}_{count + 1}{ext}"
        self._counters[name] = count + 1

        self._issued.append(unique)
        self._taken.add(unique)
        return unique

    def claim(self, name: str) -> bool:
        """
        정확히 이 이름을 예약 (sidecar용).

        이미 할당/예약된 이름이면 False. 성공 시 같은 base name의
        이후 allocate 요청은 suffix가 붙음.
        """
        if name in self._taken:
            return False
        self._counters[name] = self._counters.get(name, 0) + 1
        self._issued.append(name)
        self._taken.add(name)
        return True

    @property
    def allocated(self) -> list[str]:
        """지금까지 발급한 이름 (발급 순)."""
        return list(self._issued)
