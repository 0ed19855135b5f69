"""
測試用的 Supabase 替身與店家資料
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from schemas.shop import ShopWithDetails, ShopHours, ShopTag, Review

# 不會自動產生 id 的資料表
TABLES_WITHOUT_ID = {"users", "user_favorites"}


class MockResponse:
    def __init__(self, data):
        self.data = data


class MockQuery:
    """模擬 supabase 的鏈式查詢"""

    def __init__(self, db: "MockSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload: Any = None
        self.conditions = []
        self.order_by = None
        self.limit_count = None
        self.on_conflict = ""
        self.ignore_duplicates = False

    def select(self, *args, **kwargs):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict: str = "", ignore_duplicates: bool = False):
        self.action = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        self.ignore_duplicates = ignore_duplicates
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.conditions.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.conditions.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def _matches(self, row):
        return all(condition(row) for condition in self.conditions)

    def _new_row(self, row):
        row = dict(row)
        if self.table not in TABLES_WITHOUT_ID and "id" not in row:
            row["id"] = self.db.next_id(self.table)
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        self.db.tables.setdefault(self.table, []).append(row)
        return dict(row)

    def execute(self):
        self.db.calls.append((self.table, self.action))
        if self.table in self.db.failing_tables:
            raise Exception(f'relation "{self.table}" does not exist')

        rows = self.db.tables.setdefault(self.table, [])
        payload = self.payload if isinstance(self.payload, list) else [self.payload]

        if self.action == "insert":
            return MockResponse([self._new_row(row) for row in payload])

        if self.action == "upsert":
            keys = [key.strip() for key in self.on_conflict.split(",") if key.strip()]
            result = []
            for row in payload:
                existing = next(
                    (r for r in rows if keys and all(r.get(k) == row.get(k) for k in keys)),
                    None
                )
                if existing is None:
                    result.append(self._new_row(row))
                elif not self.ignore_duplicates:
                    existing.update(row)
                    result.append(dict(existing))
            return MockResponse(result)

        matched = [row for row in rows if self._matches(row)]

        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return MockResponse([dict(row) for row in matched])

        if self.action == "delete":
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return MockResponse([dict(row) for row in matched])

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self.limit_count is not None:
            matched = matched[:self.limit_count]
        return MockResponse([dict(row) for row in matched])


class MockBucket:
    def __init__(self, storage: "MockStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path, content, file_options=None):
        self.storage.files[f"{self.name}/{path}"] = content
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://test.supabase.co/storage/v1/object/public/{self.name}/{path}"

    def remove(self, paths):
        for path in paths:
            self.storage.files.pop(f"{self.name}/{path}", None)
        return []


class MockStorage:
    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.buckets = ["shop_images"]

    def from_(self, bucket):
        return MockBucket(self, bucket)

    def list_buckets(self):
        return [SimpleNamespace(name=name) for name in self.buckets]


def make_auth_user(
    user_id: str,
    email: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    role: Optional[str] = None,
    is_anonymous: bool = False,
):
    """模擬 Supabase Auth 回傳的使用者"""
    return SimpleNamespace(
        id=user_id,
        email=email,
        user_metadata=dict(metadata or {}),
        app_metadata={"role": role} if role else {},
        is_anonymous=is_anonymous,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class MockAuth:
    """模擬 Supabase Auth，令牌與授權碼都預先登錄"""

    def __init__(self):
        self.tokens: Dict[str, Any] = {}
        self.codes: Dict[str, Any] = {}
        self.session = None
        self.anonymous_counter = 0
        self.signed_out = False

    def _make_session(self, user):
        token = f"token-{user.id}"
        self.tokens[token] = user
        return SimpleNamespace(user=user, access_token=token, refresh_token=f"refresh-{user.id}")

    def add_user(self, user) -> str:
        return self._make_session(user).access_token

    def get_user(self, token=None):
        if token not in self.tokens:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=self.tokens[token])

    def get_session(self):
        return self.session

    def sign_in_with_oauth(self, credentials):
        redirect_to = credentials["options"]["redirect_to"]
        return SimpleNamespace(
            provider=credentials["provider"],
            url=f"https://test.supabase.co/auth/v1/authorize?provider=google&redirect_to={redirect_to}",
        )

    def sign_in_anonymously(self, credentials=None):
        self.anonymous_counter += 1
        user = make_auth_user(f"anon-{self.anonymous_counter}", is_anonymous=True)
        self.session = self._make_session(user)
        return SimpleNamespace(user=user, session=self.session)

    def exchange_code_for_session(self, params):
        code = params["auth_code"]
        if code not in self.codes:
            raise Exception("invalid flow state")
        user = self.codes[code]
        self.session = self._make_session(user)
        return SimpleNamespace(user=user, session=self.session)

    def update_user(self, attributes):
        if self.session is None:
            raise Exception("Auth session missing!")
        self.session.user.user_metadata.update(attributes.get("data", {}))
        return SimpleNamespace(user=self.session.user)

    def sign_out(self, options=None):
        self.session = None
        self.signed_out = True


class MockSupabase:
    """記憶體中的 Supabase 替身：資料表、儲存桶與登入"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failing_tables = set()
        self.calls = []
        self._ids: Dict[str, int] = {}
        self.storage = MockStorage()
        self.auth = MockAuth()

    def next_id(self, table: str) -> int:
        self._ids[table] = self._ids.get(table, 0) + 1
        return self._ids[table]

    def table(self, name: str) -> MockQuery:
        return MockQuery(self, name)

    def seed(self, table: str, rows: List[Dict[str, Any]]) -> None:
        for row in rows:
            MockQuery(self, table).insert(row).execute()


def make_shop(
    shop_id: int,
    name: str,
    latitude: float = 35.6812,
    longitude: float = 139.7671,
    ratings: Optional[List[int]] = None,
    hours: Optional[List[Dict[str, Any]]] = None,
    tags: Optional[List[str]] = None,
    **fields,
) -> ShopWithDetails:
    """建立測試用店家"""
    data = {
        "id": shop_id,
        "name": name,
        "address": f"東京都千代田区 {shop_id}",
        "latitude": latitude,
        "longitude": longitude,
    }
    data.update(fields)
    return ShopWithDetails(
        **data,
        reviews=[
            Review(shop_id=shop_id, rating=rating, comment="good coffee here")
            for rating in ratings or []
        ],
        hours=[ShopHours(shop_id=shop_id, **entry) for entry in hours or []],
        tags=[ShopTag(shop_id=shop_id, tag=tag) for tag in tags or []],
    )


