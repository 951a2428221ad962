from __future__ import annotations

PROFILES_STATUS_MIGRATION = """\
-- Add status field to profiles table
ALTER TABLE profiles
ADD COLUMN status TEXT DEFAULT 'active' CHECK (status IN ('active', 'inactive'));

-- Update existing profiles to have 'active' status
UPDATE profiles SET status = 'active' WHERE status IS NULL;

-- Create index on status
CREATE INDEX IF NOT EXISTS idx_profiles_status ON profiles(status);
"""


class SetupRequiredError(Exception):
    """The profiles table is missing or predates the status column."""

    def __init__(self, detail: str, migration_sql: str = PROFILES_STATUS_MIGRATION):
        super().__init__(detail)
        self.detail = detail
        self.migration_sql = migration_sql


class LoginRequired(Exception):
    pass


class AdminRequired(Exception):
    pass
