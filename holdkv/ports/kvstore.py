"""
Key-value store port interface.

This module defines the protocol callers program against.
"""

from typing import Any, List, Optional, Protocol, Tuple

class KVStorePort(Protocol):
    """키-값 저장소 포트 인터페이스"""
    
    async def get(self, topic: str, key: str) -> List[Tuple[str, Any]]:
        """
        키로 값을 조회합니다. 와일드카드 세그먼트(``*``)를 사용할 수 있습니다.
        
        Args:
            topic: 토픽
            key: 조회할 키
            
        Returns:
            (키, 값) 리스트. 없으면 빈 리스트
        """
        ...
    
    async def set(self, topic: str, key: str, value: Any, ttl: Optional[float] = None) -> Any:
        """
        키-값을 저장합니다.
        
        Args:
            topic: 토픽
            key: 저장할 키
            value: 저장할 값
            ttl: TTL (밀리초), None이면 만료 없음
        """
        ...
    
    async def delete(self, topic: str, key: str) -> int:
        """
        키를 삭제합니다.
        
        Args:
            topic: 토픽
            key: 삭제할 키
            
        Returns:
            삭제된 행 수
        """
        ...
