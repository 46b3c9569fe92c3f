"""
Durable storage port interface.

This module defines the protocol for whole-object snapshot persistence.
"""

from typing import Optional, Protocol


class SnapshotStoragePort(Protocol):
    """스냅샷 저장소 포트 인터페이스"""

    location: str

    async def read(self) -> Optional[bytes]:
        """
        저장된 객체 전체를 읽습니다.

        Returns:
            바이트 또는 저장된 객체가 없으면 None

        Raises:
            PersistenceError: 읽기 실패
        """
        ...

    async def write(self, data: bytes) -> None:
        """
        객체 전체를 씁니다. 상위 디렉터리/네임스페이스는 자동 생성됩니다.

        Raises:
            PersistenceError: 쓰기 실패
        """
        ...
