"""Initial schema: collaborator tables, lineups, ledger, scores

Revision ID: 5b1e7c30a9d2
Revises:
Create Date: 2026-10-16 12:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# Revision identifiers, used by Alembic.
revision: str = "5b1e7c30a9d2"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        "leagues",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("transfer_limit", sa.Integer(), nullable=False),
        sa.Column("squad_size", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("transfer_limit >= 0", name="check_transfer_limit"),
        sa.CheckConstraint("squad_size BETWEEN 11 AND 30", name="check_squad_size"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "fantasy_teams",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("owner_name", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["league_id"], ["leagues.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("league_id", "name", name="uq_fantasy_teams_league_name"),
    )
    op.create_index("idx_fantasy_teams_league_created", "fantasy_teams", ["league_id", "created_at"])

    op.create_table(
        "squad_players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("player_name", sa.String(length=200), nullable=False),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.CheckConstraint(
            "role IN ('KEEPER', 'BATTER', 'BATTING_ALLROUNDER', 'BOWLING_ALLROUNDER', 'BOWLER')",
            name="check_squad_player_role",
        ),
        sa.ForeignKeyConstraint(["league_id"], ["leagues.id"]),
        sa.ForeignKeyConstraint(["team_id"], ["fantasy_teams.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "player_id", name="uq_squad_players_team_player"),
    )

    op.create_table(
        "league_matches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=300), nullable=True),
        sa.Column("scheduled_start", sa.DateTime(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.ForeignKeyConstraint(["league_id"], ["leagues.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_league_matches_league_start", "league_matches", ["league_id", "scheduled_start"])

    op.create_table(
        "player_performances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("player_name", sa.String(length=200), nullable=True),
        sa.Column("runs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("balls", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("fours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sixes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("strike_rate", sa.Float(), nullable=True),
        sa.Column("wickets", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("overs", sa.Float(), nullable=False, server_default="0"),
        sa.Column("maidens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("runs_conceded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("economy", sa.Float(), nullable=True),
        sa.Column("catches", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stumpings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("run_outs", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["match_id"], ["league_matches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "player_id", name="uq_player_performances_match_player"),
    )

    op.create_table(
        "lineup_revisions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("player_ids", JSON_TYPE, nullable=False),
        sa.Column("captain_id", sa.Integer(), nullable=False),
        sa.Column("vice_captain_id", sa.Integer(), nullable=False),
        sa.Column("previous_match_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("supersedes_id", sa.Integer(), nullable=True),
        sa.Column("saved_at", sa.DateTime(), nullable=False),
        sa.Column("undone_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status IN ('active', 'superseded', 'undone')", name="check_revision_status"
        ),
        sa.ForeignKeyConstraint(["team_id"], ["fantasy_teams.id"]),
        sa.ForeignKeyConstraint(["match_id"], ["league_matches.id"]),
        sa.ForeignKeyConstraint(["supersedes_id"], ["lineup_revisions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_lineup_revisions_team_status", "lineup_revisions", ["team_id", "status"])
    op.create_index("idx_lineup_revisions_team_match", "lineup_revisions", ["team_id", "match_id"])

    op.create_table(
        "lineups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("player_ids", JSON_TYPE, nullable=False),
        sa.Column("captain_id", sa.Integer(), nullable=False),
        sa.Column("vice_captain_id", sa.Integer(), nullable=False),
        sa.Column("origin", sa.String(length=20), nullable=False),
        sa.Column("revision_id", sa.Integer(), nullable=True),
        sa.Column("source_match_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("origin IN ('EXPLICIT', 'PROPAGATED')", name="check_lineup_origin"),
        sa.CheckConstraint("captain_id != vice_captain_id", name="check_lineup_captaincy"),
        sa.ForeignKeyConstraint(["team_id"], ["fantasy_teams.id"]),
        sa.ForeignKeyConstraint(["match_id"], ["league_matches.id"]),
        sa.ForeignKeyConstraint(["revision_id"], ["lineup_revisions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "match_id", name="uq_lineups_team_match"),
    )
    op.create_index("idx_lineups_match", "lineups", ["match_id"])

    op.create_table(
        "transfer_ledger",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("revision_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=3), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("counterpart_player_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("type IN ('IN', 'OUT')", name="check_transfer_type"),
        sa.ForeignKeyConstraint(["team_id"], ["fantasy_teams.id"]),
        sa.ForeignKeyConstraint(["match_id"], ["league_matches.id"]),
        sa.ForeignKeyConstraint(["revision_id"], ["lineup_revisions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_transfer_ledger_team", "transfer_ledger", ["team_id", "match_id"])
    op.create_index("idx_transfer_ledger_revision", "transfer_ledger", ["revision_id"])

    op.create_table(
        "captaincy_changes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("revision_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("previous_player_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("kind IN ('CAPTAIN', 'VICE_CAPTAIN')", name="check_captaincy_kind"),
        sa.ForeignKeyConstraint(["team_id"], ["fantasy_teams.id"]),
        sa.ForeignKeyConstraint(["match_id"], ["league_matches.id"]),
        sa.ForeignKeyConstraint(["revision_id"], ["lineup_revisions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_captaincy_changes_team", "captaincy_changes", ["team_id", "kind"])

    op.create_table(
        "team_states",
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("transfers_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("captain_changes_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vice_captain_changes_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("latest_lineup_match_id", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.ForeignKeyConstraint(["team_id"], ["fantasy_teams.id"]),
        sa.PrimaryKeyConstraint("team_id"),
    )

    op.create_table(
        "team_match_scores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("captain_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vice_captain_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("regular_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.ForeignKeyConstraint(["team_id"], ["fantasy_teams.id"]),
        sa.ForeignKeyConstraint(["league_id"], ["leagues.id"]),
        sa.ForeignKeyConstraint(["match_id"], ["league_matches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "match_id", name="uq_team_match_scores_team_match"),
    )
    op.create_index("idx_team_match_scores_league_match", "team_match_scores", ["league_id", "match_id"])


def downgrade() -> None:
    op.drop_index("idx_team_match_scores_league_match", table_name="team_match_scores")
    op.drop_table("team_match_scores")
    op.drop_table("team_states")
    op.drop_index("idx_captaincy_changes_team", table_name="captaincy_changes")
    op.drop_table("captaincy_changes")
    op.drop_index("idx_transfer_ledger_revision", table_name="transfer_ledger")
    op.drop_index("idx_transfer_ledger_team", table_name="transfer_ledger")
    op.drop_table("transfer_ledger")
    op.drop_index("idx_lineups_match", table_name="lineups")
    op.drop_table("lineups")
    op.drop_index("idx_lineup_revisions_team_match", table_name="lineup_revisions")
    op.drop_index("idx_lineup_revisions_team_status", table_name="lineup_revisions")
    op.drop_table("lineup_revisions")
    op.drop_table("player_performances")
    op.drop_index("idx_league_matches_league_start", table_name="league_matches")
    op.drop_table("league_matches")
    op.drop_table("squad_players")
    op.drop_index("idx_fantasy_teams_league_created", table_name="fantasy_teams")
    op.drop_table("fantasy_teams")
    op.drop_table("leagues")
