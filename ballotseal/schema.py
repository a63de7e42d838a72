"""
BALLOTSEAL — SQLite Schema Definitions.

Elections, candidates, participation records and anonymous ballots.
Participation and ballots are deliberately unrelated: no column joins a
ballot back to the user who cast it. Both tables are ``WITHOUT ROWID`` and
keyed on their natural keys, so storage order follows user id and ballot
tag rather than insertion order.
"""

SCHEMA_VERSION = "1.1.0"

# ─── Elections ───────────────────────────────────────────────────────
CREATE_ELECTIONS = """
CREATE TABLE IF NOT EXISTS elections (
    id              TEXT PRIMARY KEY,
    title           TEXT NOT NULL,
    description     TEXT NOT NULL,
    start_date      TEXT NOT NULL,
    end_date        TEXT NOT NULL,
    is_active       INTEGER NOT NULL DEFAULT 1,
    definition_hash TEXT NOT NULL,
    merkle_root     TEXT,
    results_digest  TEXT,
    created_by      TEXT,
    created_at      TEXT NOT NULL DEFAULT (datetime('now')),
    closed_at       TEXT
);
"""

CREATE_CANDIDATES = """
CREATE TABLE IF NOT EXISTS candidates (
    election_id     TEXT NOT NULL REFERENCES elections(id) ON DELETE CASCADE,
    candidate_id    TEXT NOT NULL,
    name            TEXT NOT NULL,
    description     TEXT NOT NULL,
    position        INTEGER NOT NULL,
    PRIMARY KEY (election_id, candidate_id)
);
"""

# ─── Participation (one row per user per election) ───────────────────
CREATE_PARTICIPATION = """
CREATE TABLE IF NOT EXISTS voter_participation (
    election_id     TEXT NOT NULL REFERENCES elections(id) ON DELETE CASCADE,
    user_id         TEXT NOT NULL,
    voter_tag       TEXT NOT NULL,
    PRIMARY KEY (election_id, user_id)
) WITHOUT ROWID;
"""

# ─── Anonymous Ballots (append-only) ─────────────────────────────────
CREATE_BALLOTS = """
CREATE TABLE IF NOT EXISTS ballots (
    election_id     TEXT NOT NULL REFERENCES elections(id) ON DELETE CASCADE,
    ballot_tag      TEXT NOT NULL,
    candidate_id    TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    PRIMARY KEY (election_id, ballot_tag)
) WITHOUT ROWID;
"""

CREATE_BALLOTS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_ballots_candidate ON ballots(election_id, candidate_id);
"""

CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     TEXT PRIMARY KEY,
    applied_at  TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

ALL_SCHEMA = [
    CREATE_ELECTIONS,
    CREATE_CANDIDATES,
    CREATE_PARTICIPATION,
    CREATE_BALLOTS,
    CREATE_BALLOTS_INDEX,
    CREATE_SCHEMA_VERSION,
]
