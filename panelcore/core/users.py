from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from panelcore.core import credentials
from panelcore.core.errors import StorageInitError
from panelcore.core.roles import Role


class UserAccount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = ""
    hashed_password: str = Field(default="", alias="hashedPassword")
    salt: str = ""
    role: Role = Role.UNKNOWN

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, v):  # noqa: ANN001
        return Role.coerce(v)

    @field_serializer("role")
    def _dump_role(self, role: Role) -> str:
        return role.label

    def is_valid(self) -> bool:
        return bool(self.username) and bool(self.hashed_password) and bool(self.salt) and self.role != Role.UNKNOWN


class UserStore:
    """
    One JSON file per account under `users_dir`.

    Secrets never leave this class except as salted hashes.
    """

    def __init__(
        self,
        users_dir: str,
        *,
        default_owner_username: str = "owner",
        default_owner_password: str = "password",
        logger: Optional[logging.Logger] = None,
    ):
        self.users_dir = users_dir
        self.default_owner_username = default_owner_username
        self.default_owner_password = default_owner_password
        self.logger = logger or logging.getLogger(__name__)

    def _path(self, username: str) -> str:
        clean = (username or "").replace("/", "_").replace("\\", "_").replace("..", "_")
        if not clean:
            return ""
        return os.path.join(self.users_dir, clean + ".json")

    def begin(self) -> bool:
        try:
            os.makedirs(self.users_dir, exist_ok=True)
        except OSError as e:
            raise StorageInitError(path=self.users_dir, reason=str(e)) from e
        if self.any_user_exists():
            return True
        self.logger.warning(
            "No users found; creating default owner '%s'. Change its password immediately.",
            self.default_owner_username,
        )
        return self.add_user(self.default_owner_username, self.default_owner_password, Role.OWNER)

    def any_user_exists(self) -> bool:
        try:
            names = os.listdir(self.users_dir)
        except OSError:
            return False
        return any(n.endswith(".json") and os.path.isfile(os.path.join(self.users_dir, n)) for n in names)

    def load_user(self, username: str) -> Optional[UserAccount]:
        path = self._path(username)
        if not path or not os.path.isfile(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            account = UserAccount.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            self.logger.error("Failed to load user file %s: %s", path, e)
            return None
        if not account.is_valid():
            self.logger.error("User file %s holds invalid account data.", path)
            return None
        return account

    def save_user(self, account: UserAccount) -> bool:
        if not account.is_valid():
            self.logger.warning("Refusing to save invalid account data.")
            return False
        path = self._path(account.username)
        if not path:
            return False
        tmp: Optional[str] = None
        try:
            os.makedirs(self.users_dir, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".tmp_user_", suffix=".json", dir=self.users_dir)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(account.model_dump(by_alias=True), f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp, path)
            return True
        except OSError as e:
            self.logger.error("Failed to write user file %s: %s", path, e)
            return False
        finally:
            try:
                if tmp is not None and os.path.exists(tmp):
                    os.remove(tmp)
            except OSError:
                pass

    def add_user(self, username: str, password: str, role: Role) -> bool:
        if not username or not password or Role.coerce(role) == Role.UNKNOWN:
            return False
        path = self._path(username)
        if not path:
            return False
        if os.path.exists(path):
            self.logger.info("User '%s' already exists.", username)
            return False
        account = self._with_password(UserAccount(username=username, role=role), password)
        self.logger.info("Adding user %s (%s).", username, Role.coerce(role).label)
        return self.save_user(account)

    def delete_user(self, username: str) -> bool:
        path = self._path(username)
        if not path or not os.path.isfile(path):
            return False
        try:
            os.remove(path)
        except OSError as e:
            self.logger.error("Failed to remove user file %s: %s", path, e)
            return False
        return True

    def update_password(self, username: str, new_password: str) -> bool:
        account = self.load_user(username)
        if account is None or not new_password:
            return False
        return self.save_user(self._with_password(account, new_password))

    def update_role(self, username: str, new_role: Role) -> bool:
        role = Role.coerce(new_role)
        if role == Role.UNKNOWN:
            return False
        account = self.load_user(username)
        if account is None:
            return False
        account.role = role
        return self.save_user(account)

    def authenticate(self, username: str, password: str) -> Optional[UserAccount]:
        account = self.load_user(username)
        if account is None:
            return None
        if not credentials.verify_secret(password, account.hashed_password, account.salt):
            return None
        return account

    @staticmethod
    def _with_password(account: UserAccount, password: str) -> UserAccount:
        # A fresh salt on every password change.
        salt = credentials.generate_salt()
        return account.model_copy(update={"salt": salt, "hashed_password": credentials.hash_with_salt(password, salt)})
