# legal_ml/services/collectors.py
"""
Signal collectors: one per model domain.

Each collector owns the SQL for its domain and returns raw rows (dicts keyed
by column name) or, for behavior patterns, the per-action pattern map. They
read the practice-management tables and never write.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Protocol

from legal_ml.models.schemas import BehaviorPattern

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class PersistenceGateway(Protocol):
    async def query(self, statement: str, params: Optional[Dict[str, Any]] = None) -> List[Row]:
        ...


def like_pattern(partial_query: str) -> str:
    return f"%{partial_query}%"


def parse_json_column(value: Any, default: Any = None) -> Any:
    """JSON columns arrive as text through raw statements on some drivers"""
    if value is None or value == "":
        return default
    if isinstance(value, (bytes, str)):
        return json.loads(value)
    return value


class SearchSignalCollector:
    POPULAR_SEARCHES = """
        SELECT query,
               COUNT(*) AS frequency,
               AVG(COALESCE(relevance_score, 0.5)) AS relevance,
               MAX(category) AS category,
               MAX(created_at) AS timestamp
        FROM search_logs
        WHERE query ILIKE :pattern
          AND created_at >= NOW() - make_interval(days => 30)
        GROUP BY query
        ORDER BY frequency DESC, relevance DESC
        LIMIT :limit
    """

    USER_SEARCH_HISTORY = """
        SELECT query,
               COUNT(*) AS frequency,
               AVG(COALESCE(relevance_score, 0.5)) AS relevance,
               MAX(category) AS category,
               MAX(created_at) AS timestamp
        FROM search_logs
        WHERE user_id = :user_id
          AND query ILIKE :pattern
        GROUP BY query
        ORDER BY MAX(created_at) DESC
        LIMIT :limit
    """

    CONTENT_MATCHES = """
        SELECT query, frequency, relevance, category, timestamp
        FROM (
            SELECT title AS query, 1 AS frequency,
                   ts_rank(to_tsvector('english', title), plainto_tsquery('english', :query)) AS relevance,
                   'case' AS category, updated_at AS timestamp
            FROM cases WHERE title ILIKE :pattern
            UNION ALL
            SELECT title AS query, 1 AS frequency,
                   ts_rank(to_tsvector('english', title), plainto_tsquery('english', :query)) AS relevance,
                   'document' AS category, updated_at AS timestamp
            FROM documents WHERE title ILIKE :pattern
            UNION ALL
            SELECT name AS query, 1 AS frequency,
                   ts_rank(to_tsvector('english', name), plainto_tsquery('english', :query)) AS relevance,
                   'client' AS category, updated_at AS timestamp
            FROM clients WHERE name ILIKE :pattern
        ) AS content_matches
        ORDER BY relevance DESC
        LIMIT :limit
    """

    TRAINING_DATA = """
        SELECT LOWER(query) AS query,
               user_id,
               category,
               COUNT(*) AS frequency,
               AVG(COALESCE(relevance_score, 0.5)) AS avg_relevance
        FROM search_logs
        WHERE created_at >= NOW() - make_interval(days => :window_days)
        GROUP BY LOWER(query), user_id, category
        HAVING COUNT(*) >= :min_occurrences
    """

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    async def popular_searches(self, partial_query: str, limit: int) -> List[Row]:
        return await self.gateway.query(
            self.POPULAR_SEARCHES,
            {"pattern": like_pattern(partial_query), "limit": limit},
        )

    async def user_search_history(self, user_id: str, partial_query: str, limit: int) -> List[Row]:
        return await self.gateway.query(
            self.USER_SEARCH_HISTORY,
            {"user_id": user_id, "pattern": like_pattern(partial_query), "limit": limit},
        )

    async def content_matches(self, partial_query: str, limit: int) -> List[Row]:
        return await self.gateway.query(
            self.CONTENT_MATCHES,
            {"query": partial_query, "pattern": like_pattern(partial_query), "limit": limit},
        )

    async def training_rows(self, window_days: int, min_occurrences: int) -> List[Row]:
        return await self.gateway.query(
            self.TRAINING_DATA,
            {"window_days": window_days, "min_occurrences": min_occurrences},
        )


class BehaviorSignalCollector:
    RECENT_ACTIVITIES = """
        SELECT action, entity_type, entity_id, created_at
        FROM user_activities
        WHERE user_id = :user_id
        ORDER BY created_at DESC
        LIMIT :limit
    """

    BEHAVIOR_PATTERNS = """
        WITH windowed AS (
            SELECT action,
                   EXTRACT(EPOCH FROM created_at - LAG(created_at)
                       OVER (PARTITION BY action ORDER BY created_at)) AS interval_seconds
            FROM user_activities
            WHERE user_id = :user_id
              AND created_at >= NOW() - make_interval(days => :window_days)
        )
        SELECT action,
               COUNT(*) AS frequency,
               COALESCE(AVG(interval_seconds), 0) AS avg_interval,
               COUNT(*) FILTER (WHERE action = 'login_failed') AS failed_logins
        FROM windowed
        GROUP BY action
    """

    TRAINING_DATA = """
        WITH windowed AS (
            SELECT user_id, action, entity_type,
                   EXTRACT(EPOCH FROM created_at - LAG(created_at)
                       OVER (PARTITION BY user_id, action, entity_type ORDER BY created_at)) AS interval_seconds
            FROM user_activities
            WHERE created_at >= NOW() - make_interval(days => :window_days)
        )
        SELECT user_id, action, entity_type,
               COUNT(*) AS frequency,
               AVG(interval_seconds) AS avg_interval
        FROM windowed
        GROUP BY user_id, action, entity_type
        HAVING COUNT(*) >= :min_occurrences
    """

    def __init__(self, gateway: PersistenceGateway,
                 recent_limit: int = 100, pattern_window_days: int = 30):
        self.gateway = gateway
        self.recent_limit = recent_limit
        self.pattern_window_days = pattern_window_days

    async def recent_activities(self, user_id: str) -> List[Row]:
        return await self.gateway.query(
            self.RECENT_ACTIVITIES,
            {"user_id": user_id, "limit": self.recent_limit},
        )

    async def behavior_patterns(self, user_id: str) -> Dict[str, BehaviorPattern]:
        """Per-action pattern map for the user over the pattern window"""
        rows = await self.gateway.query(
            self.BEHAVIOR_PATTERNS,
            {"user_id": user_id, "window_days": self.pattern_window_days},
        )
        return {
            row["action"]: BehaviorPattern(
                frequency=int(row.get("frequency") or 0),
                avg_interval=float(row.get("avg_interval") or 0.0),
                failed_logins=int(row.get("failed_logins") or 0),
            )
            for row in rows
        }

    async def training_rows(self, window_days: int, min_occurrences: int) -> List[Row]:
        return await self.gateway.query(
            self.TRAINING_DATA,
            {"window_days": window_days, "min_occurrences": min_occurrences},
        )


class DocumentSignalCollector:
    TRAINING_DATA = """
        SELECT id, title, description, file_type, file_size, category, tags
        FROM documents
        WHERE created_at >= NOW() - make_interval(days => :window_days)
    """

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    async def training_rows(self, window_days: int) -> List[Row]:
        return await self.gateway.query(self.TRAINING_DATA, {"window_days": window_days})


class CaseSignalCollector:
    SIMILAR_CASES = """
        SELECT c.id AS case_id,
               'Similar to ' || c.case_type || ' matters you have handled' AS reasoning
        FROM cases c
        WHERE c.status = 'open'
          AND c.case_type IN (
              SELECT DISTINCT hc.case_type
              FROM case_assignments ha
              JOIN cases hc ON hc.id = ha.case_id
              WHERE ha.user_id = :user_id
          )
          AND c.id NOT IN (SELECT case_id FROM case_assignments WHERE user_id = :user_id)
        ORDER BY c.created_at DESC
        LIMIT :limit
    """

    EXPERT_ASSIGNMENTS = """
        SELECT c.id AS case_id,
               'Unassigned ' || c.case_type || ' case matches your specialization' AS reasoning
        FROM cases c
        JOIN users u ON u.id = :user_id
        WHERE c.status = 'open'
          AND c.assigned_to IS NULL
          AND c.case_type = u.specialization
        ORDER BY c.created_at ASC
        LIMIT :limit
    """

    RESOURCE_ALLOCATIONS = """
        SELECT c.id AS case_id,
               c.priority AS priority,
               'Deadline on ' || TO_CHAR(c.next_deadline, 'YYYY-MM-DD') || ' may need additional resources' AS reasoning
        FROM cases c
        JOIN case_assignments ca ON ca.case_id = c.id
        WHERE ca.user_id = :user_id
          AND c.status = 'open'
          AND c.next_deadline <= NOW() + make_interval(days => 14)
        ORDER BY c.next_deadline ASC
        LIMIT :limit
    """

    ASSIGNMENT_TRAINING_DATA = """
        SELECT c.case_type AS category,
               c.priority,
               c.complexity,
               u.role AS user_role,
               u.experience_level,
               COUNT(*) AS assignment_count,
               AVG(EXTRACT(EPOCH FROM c.closed_at - ca.assigned_at) / 86400) AS avg_resolution_time
        FROM case_assignments ca
        JOIN cases c ON c.id = ca.case_id
        JOIN users u ON u.id = ca.user_id
        WHERE ca.assigned_at >= NOW() - make_interval(days => :window_days)
        GROUP BY c.case_type, c.priority, c.complexity, u.role, u.experience_level
        HAVING COUNT(*) >= :min_assignments
    """

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    async def similar_cases(self, user_id: str, limit: int) -> List[Row]:
        return await self.gateway.query(self.SIMILAR_CASES, {"user_id": user_id, "limit": limit})

    async def expert_assignments(self, user_id: str, limit: int) -> List[Row]:
        return await self.gateway.query(self.EXPERT_ASSIGNMENTS, {"user_id": user_id, "limit": limit})

    async def resource_allocations(self, user_id: str, limit: int) -> List[Row]:
        return await self.gateway.query(self.RESOURCE_ALLOCATIONS, {"user_id": user_id, "limit": limit})

    async def assignment_training_rows(self, window_days: int, min_assignments: int) -> List[Row]:
        return await self.gateway.query(
            self.ASSIGNMENT_TRAINING_DATA,
            {"window_days": window_days, "min_assignments": min_assignments},
        )


class FraudSignalCollector:
    SUSPICIOUS_HISTORY = """
        SELECT user_id, risk_factors, risk_score, is_confirmed_fraud, detected_at
        FROM ml_suspicious_activities
        WHERE detected_at >= NOW() - make_interval(days => :window_days)
          AND is_confirmed_fraud IS NOT NULL
    """

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    async def suspicious_history(self, window_days: int) -> List[Row]:
        rows = await self.gateway.query(self.SUSPICIOUS_HISTORY, {"window_days": window_days})
        return [
            {**row, "risk_factors": parse_json_column(row.get("risk_factors"), default=[])}
            for row in rows
        ]
