from dataclasses import dataclass, field


@dataclass
class Session:
    """
    Credentials for the backend API.

    Acquired at login, replaced when the backend hands out a refreshed token and
    cleared at logout. Clients receive it explicitly instead of reading module state.
    """

    access_token: str | None = None
    user: dict | None = None
    refresh_count: int = field(default=0, compare=False)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def acquire(self, access_token: str, user: dict | None = None) -> None:
        self.access_token = access_token
        if user is not None:
            self.user = user

    def refreshed(self, access_token: str) -> None:
        self.access_token = access_token
        self.refresh_count += 1

    def clear(self) -> None:
        self.access_token = None
        self.user = None

    def auth_headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}
