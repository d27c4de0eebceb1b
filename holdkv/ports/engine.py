"""
Storage engine port interface.

This module defines the protocol the store uses to reach the
relational engine: single statements, queries and transactions.
"""

from typing import Any, Awaitable, Callable, List, Mapping, Protocol, Sequence, TypeVar
from holdkv.core.models import WriteResult

T = TypeVar("T")

class TransactionPort(Protocol):
    """트랜잭션 내부에서 사용하는 실행 인터페이스"""
    
    async def execute(self, sql: str, values: Sequence[Any] = ()) -> int:
        """
        구문을 실행합니다.
        
        Args:
            sql: SQL 구문
            values: 바인딩 값
            
        Returns:
            영향받은 행 수
        """
        ...

    async def write(self, sql: str, values: Sequence[Any] = ()) -> WriteResult:
        """
        쓰기 구문을 실행합니다.

        Returns:
            변경 행 수와 마지막 rowid
        """
        ...

    async def query(self, sql: str, values: Sequence[Any] = ()) -> List[Mapping[str, Any]]:
        """
        조회 구문을 실행합니다.
        
        Args:
            sql: SQL 구문
            values: 바인딩 값
            
        Returns:
            컬럼 이름으로 접근 가능한 행 리스트
        """
        ...

class EnginePort(TransactionPort, Protocol):
    """스토리지 엔진 포트 인터페이스"""
    
    async def transaction(self, fn: Callable[[TransactionPort], Awaitable[T]]) -> T:
        """
        fn을 하나의 트랜잭션 안에서 실행합니다. 예외가 나면 전부 롤백됩니다.
        
        Args:
            fn: 트랜잭션 핸들을 받는 비동기 함수
            
        Returns:
            fn의 반환값
        """
        ...
    
    async def close(self) -> None:
        """연결을 닫습니다."""
        ...
