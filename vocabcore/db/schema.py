"""
DDL for the vocabcore DuckDB schema.

Timestamps are stored as naive UTC TIMESTAMP values; db_utils converts them to
and from timezone-aware datetimes.
"""

DB_SCHEMA_SQL = """
CREATE SEQUENCE IF NOT EXISTS words_id_seq START 1;

CREATE TABLE IF NOT EXISTS words (
    id INTEGER PRIMARY KEY DEFAULT nextval('words_id_seq'),
    text VARCHAR NOT NULL UNIQUE,
    definition VARCHAR NOT NULL,
    pronunciation VARCHAR,
    add_reason VARCHAR NOT NULL
        CHECK (add_reason IN ('translation_lookup', 'pronunciation_error', 'listening_difficulty')),
    proficiency_level INTEGER NOT NULL DEFAULT 0
        CHECK (proficiency_level >= 0 AND proficiency_level <= 9),
    review_count INTEGER NOT NULL DEFAULT 0 CHECK (review_count >= 0),
    last_review_at TIMESTAMP,
    next_review_at TIMESTAMP,
    created_at TIMESTAMP NOT NULL,
    easiness_factor DOUBLE NOT NULL DEFAULT 2.5 CHECK (easiness_factor >= 1.3),
    interval_days INTEGER NOT NULL DEFAULT 0 CHECK (interval_days >= 0),
    repetitions INTEGER NOT NULL DEFAULT 0 CHECK (repetitions >= 0)
);

CREATE SEQUENCE IF NOT EXISTS activity_log_id_seq START 1;

CREATE TABLE IF NOT EXISTS activity_log (
    activity_id INTEGER PRIMARY KEY DEFAULT nextval('activity_log_id_seq'),
    activity_type VARCHAR NOT NULL
        CHECK (activity_type IN ('reading', 'listening', 'speaking', 'translation')),
    word_id INTEGER,
    accuracy_score DOUBLE,
    time_spent_seconds DOUBLE NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL
);
"""

DROP_SCHEMA_SQL = """
DROP TABLE IF EXISTS activity_log;
DROP TABLE IF EXISTS words;
DROP SEQUENCE IF EXISTS activity_log_id_seq;
DROP SEQUENCE IF EXISTS words_id_seq;
"""
