# ===================================
# repository.py - Local JSON Stores
# ===================================

"""File-backed watchlist, recently viewed list and user profile."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from model import Stock, UserProfile

logger = logging.getLogger(__name__)

_stock_list = TypeAdapter(List[Stock])


class RepositoryError(Exception):
    """A local store could not be read or written"""


def _write_atomic(path: Path, data: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise


def _read_stocks(path: Path) -> List[Stock]:
    if not path.exists():
        return []
    try:
        return _stock_list.validate_json(path.read_bytes())
    except (OSError, ValidationError) as e:
        raise RepositoryError(f"Could not read {path.name}: {e}") from e


def _write_stocks(path: Path, stocks: List[Stock]) -> None:
    try:
        _write_atomic(path, _stock_list.dump_json(stocks, indent=2).decode("utf-8"))
    except OSError as e:
        raise RepositoryError(f"Could not write {path.name}: {e}") from e


class WatchlistRepository:
    def __init__(self, data_dir: Path, file_name: str = "watchlist.json"):
        self.path = Path(data_dir) / file_name

    def get_all(self) -> List[Stock]:
        return _read_stocks(self.path)

    def save(self, stock: Stock) -> None:
        """Append a stock unless its symbol is already present"""
        stocks = self.get_all()
        if any(s.symbol == stock.symbol for s in stocks):
            return
        stocks.append(stock)
        _write_stocks(self.path, stocks)

    def remove(self, symbol: str) -> None:
        stocks = [s for s in self.get_all() if s.symbol != symbol]
        _write_stocks(self.path, stocks)

    def contains(self, symbol: str) -> bool:
        return any(s.symbol == symbol for s in self.get_all())


class RecentlyViewedStore:
    """Most recent first, unique by symbol, capped at ``max_items``"""

    def __init__(self, data_dir: Path, max_items: int = 10, file_name: str = "recent_stocks.json"):
        self.path = Path(data_dir) / file_name
        self.max_items = max_items

    def get_all(self) -> List[Stock]:
        return _read_stocks(self.path)

    def add(self, stock: Stock) -> None:
        try:
            stocks = [s for s in self.get_all() if s.symbol != stock.symbol]
            stocks.insert(0, stock)
            _write_stocks(self.path, stocks[:self.max_items])
        except RepositoryError as e:
            logger.error(f"Error adding {stock.symbol} to recently viewed: {e}")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class ProfileStore:
    """Key-value JSON file holding the registered user and the session flag"""

    USER_KEY = "current_user"
    LOGGED_IN_KEY = "is_logged_in"

    def __init__(self, data_dir: Path, file_name: str = "profile.json"):
        self.path = Path(data_dir) / file_name

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise RepositoryError(f"Could not read {self.path.name}: {e}") from e

    def _store(self, values: Dict[str, Any]) -> None:
        try:
            _write_atomic(self.path, json.dumps(values, indent=2, default=str))
        except OSError as e:
            raise RepositoryError(f"Could not write {self.path.name}: {e}") from e

    def _saved_user(self) -> Optional[UserProfile]:
        raw = self._load().get(self.USER_KEY)
        if raw is None:
            return None
        try:
            return UserProfile.model_validate(raw)
        except ValidationError:
            logger.warning("Ignoring unreadable saved profile")
            return None

    @property
    def is_logged_in(self) -> bool:
        return bool(self._load().get(self.LOGGED_IN_KEY, False))

    def current_user(self) -> Optional[UserProfile]:
        if not self.is_logged_in:
            return None
        return self._saved_user()

    def register(self, name: str, email: str, profile_image_path: Optional[str] = None) -> UserProfile:
        user = UserProfile(name=name, email=email, profile_image_path=profile_image_path)
        self._store({self.USER_KEY: user.model_dump(mode="json"), self.LOGGED_IN_KEY: True})
        logger.info(f"Registered profile {user.id}")
        return user

    def login(self, email: str) -> Optional[UserProfile]:
        """Log in when the email matches the registered profile"""
        user = self._saved_user()
        if user is None or user.email != email:
            return None
        values = self._load()
        values[self.LOGGED_IN_KEY] = True
        self._store(values)
        return user

    def logout(self) -> None:
        values = self._load()
        values[self.LOGGED_IN_KEY] = False
        self._store(values)

    def update_profile(self, name: Optional[str] = None,
                       profile_image_path: Optional[str] = None) -> Optional[UserProfile]:
        user = self.current_user()
        if user is None:
            return None
        if name is not None:
            user.name = name
        if profile_image_path is not None:
            user.profile_image_path = profile_image_path
        values = self._load()
        values[self.USER_KEY] = user.model_dump(mode="json")
        self._store(values)
        return user

    def delete_account(self) -> None:
        self.path.unlink(missing_ok=True)
