"""
SQL statement builder for holdkv.

Turns a topic schema plus key segments into parameterized SQL for
table creation, upsert, lookup, delete and TTL purge. Only the
validated topic name and generated ``colN`` names are ever placed in
the SQL text; every value is bound.
"""

from typing import Any, List, Optional, Sequence, Tuple

from .keys import column_names, is_wildcard
from .models import PreparedStatement, TopicSchema


def _q(identifier: str) -> str:
    return f'"{identifier}"'


def create_table(topic: str, arity: int, turbo: bool = False) -> List[str]:
    """
    토픽 테이블 생성 구문을 만듭니다.

    Args:
        topic: 검증된 토픽 이름
        arity: 키 세그먼트 수
        turbo: True이면 UNIQUE 제약과 ttl 인덱스를 생략

    Returns:
        실행할 SQL 구문 리스트
    """
    keys = column_names(arity)
    columns = [f"{_q(c)} TEXT NOT NULL" for c in keys]
    columns += [
        '"serialized" BOOLEAN NOT NULL DEFAULT 0',
        '"value" TEXT NOT NULL',
        '"ttl" INTEGER DEFAULT NULL',
    ]
    if not turbo:
        columns.append(f"UNIQUE ({', '.join(_q(c) for c in keys)})")

    sql = [f"CREATE TABLE IF NOT EXISTS {_q(topic)} (\n    " + ",\n    ".join(columns) + "\n)"]
    if not turbo:
        sql.append(f'CREATE INDEX IF NOT EXISTS {_q(f"idx_{topic}_ttl")} ON {_q(topic)} ("ttl")')
    return sql


def table_info(topic: str) -> str:
    return f"PRAGMA table_info({_q(topic)})"


def prepare_insert(schema: TopicSchema, segments: Sequence[str], value: str,
                   serialized: bool, expires_at: Optional[int] = None) -> PreparedStatement:
    """
    INSERT(또는 upsert) 구문을 만듭니다.

    turbo가 아니면 같은 키의 기존 행을 덮어쓰는 ON CONFLICT 절을 붙입니다.
    """
    keys = column_names(len(segments))
    columns = list(keys)
    values: List[Any] = list(segments)

    if expires_at is not None:
        columns.append("ttl")
        values.append(expires_at)

    columns += ["value", "serialized"]
    values += [value, int(serialized)]

    sql = (
        f"INSERT INTO {_q(schema.name)} ({', '.join(_q(c) for c in columns)})\n"
        f"VALUES ({', '.join('?' for _ in values)})"
    )

    if not schema.turbo:
        conditions = " AND ".join(f"{_q(c)} = ?" for c in keys)
        sql += (
            f"\nON CONFLICT ({', '.join(_q(c) for c in keys)}) "
            f'DO UPDATE SET "value" = ?, "serialized" = ?, "ttl" = ? WHERE {conditions}'
        )
        values += [value, int(serialized), expires_at]
        values += list(segments)

    return PreparedStatement(sql, tuple(values))


def _key_conditions(segments: Sequence[str], match_all: bool) -> Tuple[List[str], List[Any]]:
    if match_all:
        return [], []
    conditions, values = [], []
    for i, segment in enumerate(segments):
        if is_wildcard(segment):
            continue
        conditions.append(f'"col{i}" = ?')
        values.append(segment)
    return conditions, values


def build_select(schema: TopicSchema, segments: Sequence[str], now: int,
                 match_all: bool = False) -> PreparedStatement:
    """
    조회 구문을 만듭니다. 와일드카드 세그먼트는 조건에서 빠지고,
    만료되지 않은 행만 보이도록 ttl 필터가 항상 붙습니다.
    정렬은 지정하지 않습니다 (엔진이 반환하는 순서).
    """
    conditions, values = _key_conditions(segments, match_all)
    conditions.insert(0, '("ttl" IS NULL OR "ttl" > ?)')
    values.insert(0, now)

    selected = ", ".join(_q(c) for c in schema.key_columns + ["value", "serialized", "ttl"])
    sql = f"SELECT {selected}\nFROM {_q(schema.name)}\nWHERE " + " AND ".join(conditions)
    return PreparedStatement(sql, tuple(values))


def build_count(schema: TopicSchema, segments: Sequence[str], now: int,
                match_all: bool = False) -> PreparedStatement:
    conditions, values = _key_conditions(segments, match_all)
    conditions.insert(0, '("ttl" IS NULL OR "ttl" > ?)')
    values.insert(0, now)
    sql = f"SELECT COUNT(*) AS n FROM {_q(schema.name)} WHERE " + " AND ".join(conditions)
    return PreparedStatement(sql, tuple(values))


def build_delete(schema: TopicSchema, segments: Sequence[str],
                 match_all: bool = False) -> PreparedStatement:
    conditions, values = _key_conditions(segments, match_all)
    sql = f"DELETE FROM {_q(schema.name)}"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    return PreparedStatement(sql, tuple(values))


def build_purge(topic: str, now: int) -> PreparedStatement:
    """만료 시각이 지난 행을 지우는 구문. NULL ttl 행은 남습니다."""
    return PreparedStatement(f'DELETE FROM {_q(topic)} WHERE "ttl" < ?', (now,))
