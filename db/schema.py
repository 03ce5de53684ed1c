# SQL schema for VerseCoach database

SCHEMA_VERSION = 4

SCHEMA_SQL = """
-- Accounts (one learner each)
CREATE TABLE IF NOT EXISTS accounts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Verses (scheduler_state is opaque JSON owned by the card scheduler)
CREATE TABLE IF NOT EXISTS verses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL,
    reference TEXT NOT NULL,
    book_name TEXT NOT NULL DEFAULT '',
    text TEXT NOT NULL,
    collection_ids TEXT NOT NULL DEFAULT '[]',
    scheduler_state TEXT NOT NULL DEFAULT '{}',
    active INTEGER NOT NULL DEFAULT 1,
    learning_phase TEXT CHECK(learning_phase IN ('beginner', 'learning', 'mastered')),
    starred INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY (account_id) REFERENCES accounts (id) ON DELETE CASCADE
);

-- Collections (verse_order and drip_days are JSON arrays)
CREATE TABLE IF NOT EXISTS collections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    verse_order TEXT NOT NULL DEFAULT '[]',
    drip_rate INTEGER,
    drip_period TEXT CHECK(drip_period IN ('day', 'week')),
    drip_days TEXT,
    drip_cursor INTEGER,
    drip_last_checked TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (account_id) REFERENCES accounts (id) ON DELETE CASCADE
);

-- Gamification profile, one per account
CREATE TABLE IF NOT EXISTS profiles (
    account_id INTEGER PRIMARY KEY,
    streak INTEGER NOT NULL DEFAULT 0,
    last_review_date TEXT,
    xp INTEGER NOT NULL DEFAULT 0,
    level INTEGER NOT NULL DEFAULT 0,
    total_reviewed INTEGER NOT NULL DEFAULT 0,
    daily_review_log TEXT NOT NULL DEFAULT '{}',
    level_up TEXT NOT NULL DEFAULT 'acknowledged' CHECK(level_up IN ('pending', 'acknowledged')),
    created_at TEXT NOT NULL,
    FOREIGN KEY (account_id) REFERENCES accounts (id) ON DELETE CASCADE
);

-- Review sessions (entries is a JSON array of {verse_id, auto_grade};
-- pending holds the planned writes for the entry at `position`)
CREATE TABLE IF NOT EXISTS review_sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL,
    entries TEXT NOT NULL DEFAULT '[]',
    position INTEGER NOT NULL DEFAULT 0,
    mode TEXT NOT NULL CHECK(mode IN ('due', 'random', 'sequential')),
    input_mode TEXT NOT NULL DEFAULT 'full',
    status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active', 'complete')),
    xp_earned INTEGER NOT NULL DEFAULT 0,
    pending TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (account_id) REFERENCES accounts (id) ON DELETE CASCADE
);

-- Review log
CREATE TABLE IF NOT EXISTS reviews (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL,
    verse_id INTEGER NOT NULL,
    session_id INTEGER,
    session_position INTEGER,
    grade INTEGER NOT NULL CHECK(grade BETWEEN 1 AND 4),
    auto_graded INTEGER NOT NULL DEFAULT 0,
    xp_earned INTEGER NOT NULL DEFAULT 0,
    user_text TEXT,
    duration_seconds INTEGER,
    created_at TEXT NOT NULL,
    FOREIGN KEY (account_id) REFERENCES accounts (id) ON DELETE CASCADE
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_verses_account ON verses (account_id);
CREATE INDEX IF NOT EXISTS idx_collections_account ON collections (account_id);
CREATE INDEX IF NOT EXISTS idx_review_sessions_account ON review_sessions (account_id);
CREATE INDEX IF NOT EXISTS idx_reviews_account_verse ON reviews (account_id, verse_id);
CREATE INDEX IF NOT EXISTS idx_reviews_created ON reviews (created_at);
"""
