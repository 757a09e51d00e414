# test_repository.py - Local Store Tests
import pytest

from model import Stock
from repository import ProfileStore, RecentlyViewedStore, RepositoryError, WatchlistRepository


def stock(symbol: str) -> Stock:
    return Stock(symbol=symbol, name=f"{symbol} Inc", type="Equity", region="United States")


class TestWatchlistRepository:
    def test_save_ignores_duplicates(self, tmp_path):
        repo = WatchlistRepository(tmp_path)
        repo.save(stock("AAPL"))
        repo.save(stock("AAPL"))
        repo.save(stock("MSFT"))
        assert [s.symbol for s in repo.get_all()] == ["AAPL", "MSFT"]
        assert repo.contains("MSFT")

    def test_remove(self, tmp_path):
        repo = WatchlistRepository(tmp_path)
        repo.save(stock("AAPL"))
        repo.remove("AAPL")
        assert repo.get_all() == []
        assert not repo.contains("AAPL")

    def test_missing_file_is_empty(self, tmp_path):
        assert WatchlistRepository(tmp_path / "nowhere").get_all() == []

    def test_corrupt_file_raises(self, tmp_path):
        (tmp_path / "watchlist.json").write_text("[{]")
        with pytest.raises(RepositoryError):
            WatchlistRepository(tmp_path).get_all()


class TestRecentlyViewedStore:
    def test_most_recent_first_and_unique(self, tmp_path):
        recent = RecentlyViewedStore(tmp_path)
        for symbol in ("AAPL", "MSFT", "AAPL"):
            recent.add(stock(symbol))
        assert [s.symbol for s in recent.get_all()] == ["AAPL", "MSFT"]

    def test_capped_at_ten(self, tmp_path):
        recent = RecentlyViewedStore(tmp_path)
        for i in range(12):
            recent.add(stock(f"S{i}"))
        symbols = [s.symbol for s in recent.get_all()]
        assert len(symbols) == 10
        assert symbols[0] == "S11"
        assert "S1" not in symbols

    def test_clear(self, tmp_path):
        recent = RecentlyViewedStore(tmp_path)
        recent.add(stock("AAPL"))
        recent.clear()
        assert recent.get_all() == []


class TestProfileStore:
    def test_register_logs_in(self, tmp_path):
        store = ProfileStore(tmp_path)
        user = store.register("Ada Lovelace", "ada@example.com")
        assert store.is_logged_in
        assert store.current_user().id == user.id
        assert user.initials == "AL"

    def test_logout_and_login(self, tmp_path):
        store = ProfileStore(tmp_path)
        store.register("Ada", "ada@example.com")
        store.logout()
        assert store.current_user() is None
        assert store.login("someone@example.com") is None
        assert store.login("ada@example.com").name == "Ada"
        assert store.is_logged_in

    def test_update_profile(self, tmp_path):
        store = ProfileStore(tmp_path)
        store.register("Ada", "ada@example.com")
        store.update_profile(name="Ada King")
        assert ProfileStore(tmp_path).current_user().name == "Ada King"

    def test_delete_account(self, tmp_path):
        store = ProfileStore(tmp_path)
        store.register("Ada", "ada@example.com")
        store.delete_account()
        assert not store.is_logged_in
        assert store.login("ada@example.com") is None

    def test_display_name_falls_back_to_email(self, tmp_path):
        user = ProfileStore(tmp_path).register("", "ada@example.com")
        assert user.display_name == "ada@example.com"
        assert user.initials == "AD"
