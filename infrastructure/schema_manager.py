"""
Schema and migration management for SQLite database.
"""

import json
import logging
import sqlite3
import time

logger = logging.getLogger("gamerit.schema")

# Seed instruments for the meme stock market (keyword, starting value)
DEFAULT_MEME_STOCKS = [
    ("stonks", 1000),
    ("doge", 750),
    ("pigeon", 500),
    ("wojak", 1200),
    ("chad", 900),
]


class SchemaManager:
    """
    Owns schema creation and migrations.

    Call initialize() to ensure schema is present and migrations are applied.
    """

    def __init__(self, db_path: str, use_uri: bool = False):
        self.db_path = db_path
        self.use_uri = use_uri

    def initialize(self) -> None:
        """Create base schema and apply migrations."""
        logger.info(f"Initializing database schema: {self.db_path}")
        with self._connect() as conn:
            cursor = conn.cursor()
            self._create_base_schema(cursor)
            self._create_schema_migrations_table(cursor)
            self._run_migrations(cursor)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, uri=self.use_uri)
        conn.row_factory = sqlite3.Row
        if not self.use_uri:  # Skip WAL for in-memory databases
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA busy_timeout=5000")
        return conn

    def _create_base_schema(self, cursor) -> None:
        # Players table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS players (
                player_id INTEGER PRIMARY KEY AUTOINCREMENT,
                reddit_id TEXT NOT NULL UNIQUE,
                reddit_username TEXT NOT NULL,
                avatar_url TEXT,
                points INTEGER NOT NULL DEFAULT 1000 CHECK (points >= 0),
                xp INTEGER NOT NULL DEFAULT 0,
                level INTEGER NOT NULL DEFAULT 1,
                created_at INTEGER NOT NULL,
                updated_at INTEGER
            )
            """
        )

        # Classic post-vs-post rounds
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS game_rounds (
                round_id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at INTEGER NOT NULL,
                duration_seconds INTEGER NOT NULL,
                post_a_id TEXT NOT NULL,
                post_a_title TEXT NOT NULL,
                post_a_author TEXT,
                post_a_subreddit TEXT,
                post_a_initial_score INTEGER NOT NULL DEFAULT 0,
                post_a_final_score INTEGER,
                post_b_id TEXT NOT NULL,
                post_b_title TEXT NOT NULL,
                post_b_author TEXT,
                post_b_subreddit TEXT,
                post_b_initial_score INTEGER NOT NULL DEFAULT 0,
                post_b_final_score INTEGER,
                status TEXT NOT NULL DEFAULT 'active'
                    CHECK (status IN ('active', 'pending_payout', 'finished')),
                winner TEXT CHECK (winner IN ('A', 'B')),
                settled_at INTEGER
            )
            """
        )

    def _add_column_if_not_exists(self, cursor, table: str, column: str, column_type: str) -> None:
        try:
            cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")
        except sqlite3.OperationalError:
            pass

    def _create_schema_migrations_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                name TEXT PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    def _run_migrations(self, cursor) -> None:
        applied = {row["name"] for row in cursor.execute("SELECT name FROM schema_migrations")}
        for name, action in self._get_migrations():
            if name in applied:
                continue
            logger.info(f"Applying migration: {name}")
            action(cursor)
            cursor.execute(
                "INSERT INTO schema_migrations (name) VALUES (?)",
                (name,),
            )

    def _get_migrations(self):
        return [
            ("create_wagers_table", self._migration_create_wagers_table),
            ("create_hot_potato_tables", self._migration_create_hot_potato_tables),
            ("create_meme_stock_tables", self._migration_create_meme_stock_tables),
            ("seed_meme_stocks", self._migration_seed_meme_stocks),
            ("add_player_balance_trackers", self._migration_add_player_balance_trackers),
            ("add_welfare_claim_column", self._migration_add_welfare_claim_column),
            ("add_indexes_v1", self._migration_add_indexes_v1),
        ]

    # --- Migrations ---

    def _migration_create_wagers_table(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS wagers (
                wager_id INTEGER PRIMARY KEY AUTOINCREMENT,
                round_id INTEGER NOT NULL,
                player_id INTEGER NOT NULL,
                side TEXT NOT NULL CHECK (side IN ('A', 'B')),
                amount INTEGER NOT NULL CHECK (amount > 0),
                created_at INTEGER NOT NULL,
                payout INTEGER,
                paid_at INTEGER,
                UNIQUE (round_id, player_id),
                FOREIGN KEY (round_id) REFERENCES game_rounds(round_id),
                FOREIGN KEY (player_id) REFERENCES players(player_id)
            )
            """
        )

    def _migration_create_hot_potato_tables(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS hot_potato_rounds (
                round_id INTEGER PRIMARY KEY AUTOINCREMENT,
                post_id TEXT NOT NULL,
                post_title TEXT NOT NULL,
                post_author TEXT,
                post_subreddit TEXT,
                post_url TEXT,
                controversy_score INTEGER NOT NULL DEFAULT 0,
                initial_score INTEGER NOT NULL DEFAULT 0,
                final_score INTEGER,
                created_at INTEGER NOT NULL,
                expires_at INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'active'
                    CHECK (status IN ('active', 'deleted', 'survived', 'expired')),
                actual_deletion_time INTEGER,
                resolved_at INTEGER
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS hot_potato_wagers (
                wager_id INTEGER PRIMARY KEY AUTOINCREMENT,
                round_id INTEGER NOT NULL,
                player_id INTEGER NOT NULL,
                predicted_hours INTEGER NOT NULL CHECK (predicted_hours BETWEEN 1 AND 48),
                amount INTEGER NOT NULL CHECK (amount > 0),
                created_at INTEGER NOT NULL,
                payout INTEGER,
                paid_at INTEGER,
                UNIQUE (round_id, player_id),
                FOREIGN KEY (round_id) REFERENCES hot_potato_rounds(round_id),
                FOREIGN KEY (player_id) REFERENCES players(player_id)
            )
            """
        )

    def _migration_create_meme_stock_tables(self, cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS meme_stocks (
                stock_id INTEGER PRIMARY KEY AUTOINCREMENT,
                keyword TEXT NOT NULL UNIQUE,
                current_value INTEGER NOT NULL CHECK (current_value > 0),
                history TEXT NOT NULL DEFAULT '[]',
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS portfolio_positions (
                position_id INTEGER PRIMARY KEY AUTOINCREMENT,
                player_id INTEGER NOT NULL,
                stock_id INTEGER NOT NULL,
                shares_owned INTEGER NOT NULL CHECK (shares_owned > 0),
                average_buy_price REAL NOT NULL,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                UNIQUE (player_id, stock_id),
                FOREIGN KEY (player_id) REFERENCES players(player_id),
                FOREIGN KEY (stock_id) REFERENCES meme_stocks(stock_id)
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS meme_stock_trades (
                trade_id INTEGER PRIMARY KEY AUTOINCREMENT,
                player_id INTEGER NOT NULL,
                stock_id INTEGER NOT NULL,
                trade_type TEXT NOT NULL CHECK (trade_type IN ('buy', 'sell')),
                shares INTEGER NOT NULL CHECK (shares > 0),
                price_per_share INTEGER NOT NULL,
                total_amount INTEGER NOT NULL,
                created_at INTEGER NOT NULL,
                FOREIGN KEY (player_id) REFERENCES players(player_id),
                FOREIGN KEY (stock_id) REFERENCES meme_stocks(stock_id)
            )
            """
        )

    def _migration_seed_meme_stocks(self, cursor) -> None:
        now = int(time.time())
        for keyword, value in DEFAULT_MEME_STOCKS:
            history = json.dumps([{"timestamp": now, "value": value}])
            cursor.execute(
                """
                INSERT OR IGNORE INTO meme_stocks
                    (keyword, current_value, history, is_active, created_at, updated_at)
                VALUES (?, ?, ?, 1, ?, ?)
                """,
                (keyword, value, history, now, now),
            )

    def _migration_add_player_balance_trackers(self, cursor) -> None:
        self._add_column_if_not_exists(cursor, "players", "lowest_points", "INTEGER")
        self._add_column_if_not_exists(cursor, "players", "highest_points", "INTEGER")
        cursor.execute(
            """
            UPDATE players
            SET lowest_points = COALESCE(lowest_points, points),
                highest_points = COALESCE(highest_points, points)
            """
        )

    def _migration_add_welfare_claim_column(self, cursor) -> None:
        self._add_column_if_not_exists(cursor, "players", "last_welfare_claim", "INTEGER")

    def _migration_add_indexes_v1(self, cursor) -> None:
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_game_rounds_status ON game_rounds(status)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_game_rounds_created ON game_rounds(created_at)"
        )
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_wagers_round ON wagers(round_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_wagers_player ON wagers(player_id)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_hot_potato_status ON hot_potato_rounds(status)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_hot_potato_wagers_round ON hot_potato_wagers(round_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_positions_player ON portfolio_positions(player_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_trades_player ON meme_stock_trades(player_id)"
        )
