"""Leaderboard scoring and ranking tests (pure, no database)."""

from datetime import datetime, timedelta, timezone

import pytest

from inkwell.db.models import Leaderboard, LeaderboardMember, LeaderboardTeam, User
from inkwell.leaderboards.aggregator import (
    ParticipantStanding,
    build_participant,
    compute_standings,
    goal_percent,
    member_goal,
    member_scope,
    rank_participants,
)
from inkwell.leaderboards.service import normalize_goal_mode

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _board(**overrides) -> Leaderboard:
    fields = {
        "title": "Board",
        "measures": ["word"],
        "goal": {"word": 1000},
        "individual_goal_mode": False,
        "fundraiser_mode": False,
        "enable_teams": False,
    }
    fields.update(overrides)
    return Leaderboard(**fields)


def _standing(member_id: int, progress: dict, percent: float | None, team_id: int | None = None) -> ParticipantStanding:
    return ParticipantStanding(
        member_id=member_id,
        user_id=member_id,
        display_name=f"member-{member_id}",
        color="",
        team_id=team_id,
        joined_at=T0 + timedelta(minutes=member_id),
        progress=progress,
        percent=percent,
    )


def _team(team_id: int, name: str) -> LeaderboardTeam:
    return LeaderboardTeam(id=team_id, leaderboard_id=1, name=name, color="")


class TestGoalPercent:
    def test_capped_at_one(self):
        assert goal_percent({"word": 3000}, {"word": 1000}) == 1.0

    def test_mean_over_goal_measures(self):
        percent = goal_percent({"word": 500, "page": 10}, {"word": 1000, "page": 10})
        assert percent == pytest.approx(0.75)

    def test_missing_measure_counts_as_zero(self):
        assert goal_percent({}, {"word": 1000}) == 0.0

    def test_negative_progress_floors_at_zero(self):
        assert goal_percent({"word": -200}, {"word": 1000}) == 0.0

    def test_no_goal_has_no_percent(self):
        assert goal_percent({"word": 500}, {}) is None
        assert goal_percent({"word": 500}, None) is None

    def test_non_positive_goal_entries_skipped(self):
        assert goal_percent({"word": 500}, {"word": 1000, "page": 0}) == 0.5
        assert goal_percent({"word": 500}, {"word": 0}) is None


class TestRanking:
    def test_percent_descending(self):
        ranked = rank_participants(
            [_standing(1, {"word": 100}, 0.1), _standing(2, {"word": 900}, 0.9)],
            ["word"],
        )
        assert [s.member_id for s in ranked] == [2, 1]
        assert [s.rank for s in ranked] == [1, 2]

    def test_missing_percent_sorts_last(self):
        ranked = rank_participants(
            [_standing(1, {"word": 5000}, None), _standing(2, {"word": 0}, 0.0)],
            ["word"],
        )
        assert [s.member_id for s in ranked] == [2, 1]

    def test_tie_broken_by_raw_progress(self):
        ranked = rank_participants(
            [_standing(1, {"word": 1000}, 1.0), _standing(2, {"word": 4000}, 1.0)],
            ["word"],
        )
        assert [s.member_id for s in ranked] == [2, 1]

    def test_raw_progress_compared_in_board_measure_order(self):
        # equal words, so pages decide; never summed across measures
        ranked = rank_participants(
            [_standing(1, {"word": 100, "page": 1}, None), _standing(2, {"word": 100, "page": 50}, None)],
            ["word", "page"],
        )
        assert [s.member_id for s in ranked] == [2, 1]

    def test_full_tie_falls_back_to_join_order(self):
        ranked = rank_participants(
            [_standing(3, {"word": 10}, 0.5), _standing(1, {"word": 10}, 0.5), _standing(2, {"word": 10}, 0.5)],
            ["word"],
        )
        assert [s.member_id for s in ranked] == [1, 2, 3]


class TestTeams:
    def test_shared_goal_scaled_by_team_size(self):
        board = _board(enable_teams=True)
        participants = [
            _standing(1, {"word": 1000}, 1.0, team_id=10),
            _standing(2, {"word": 0}, 0.0, team_id=10),
            _standing(3, {"word": 600}, 0.6, team_id=20),
        ]
        standings = compute_standings(board, participants, [_team(10, "Red"), _team(20, "Blue")])

        teams = {t.team_id: t for t in standings.teams}
        assert teams[10].progress == {"word": 1000}
        assert teams[10].percent == pytest.approx(0.5)
        assert teams[20].percent == pytest.approx(0.6)
        assert [t.team_id for t in standings.teams] == [20, 10]

    def test_members_without_team_left_out(self):
        board = _board(enable_teams=True)
        participants = [_standing(1, {"word": 500}, 0.5, team_id=10), _standing(2, {"word": 900}, 0.9)]
        standings = compute_standings(board, participants, [_team(10, "Red")])
        assert standings.teams[0].member_ids == [1]
        assert standings.teams[0].progress == {"word": 500}
        assert len(standings.participants) == 2

    def test_fundraiser_team_uses_unscaled_goal_and_pool(self):
        board = _board(enable_teams=True, fundraiser_mode=True)
        participants = [
            _standing(1, {"word": 300}, 0.3, team_id=10),
            _standing(2, {"word": 300}, 0.3, team_id=10),
            _standing(3, {"word": 100}, 0.1),
        ]
        standings = compute_standings(board, participants, [_team(10, "Red")])
        assert standings.teams[0].percent == pytest.approx(0.6)
        assert standings.total == {"word": 700}
        assert standings.total_percent == pytest.approx(0.7)

    def test_individual_mode_team_is_mean_of_member_percents(self):
        board = _board(individual_goal_mode=True, measures=[], goal={}, enable_teams=True)
        participants = [
            _standing(1, {"word": 500}, 0.5, team_id=10),
            _standing(2, {"time": 60}, 1.0, team_id=10),
            _standing(3, {}, None, team_id=10),
        ]
        standings = compute_standings(board, participants, [_team(10, "Red")])
        assert standings.teams[0].percent == pytest.approx(0.75)
        assert standings.teams[0].progress == {"word": 500, "time": 60}

    def test_teams_absent_when_disabled(self):
        standings = compute_standings(_board(), [_standing(1, {"word": 1}, 0.001)], [_team(10, "Red")])
        assert standings.teams is None
        assert standings.total is None


class TestMemberScoring:
    def _member(self, **overrides) -> LeaderboardMember:
        fields = {
            "id": 7,
            "user_id": 3,
            "display_name": "",
            "color": "",
            "team_id": None,
            "created_at": T0,
            "goal": None,
        }
        fields.update(overrides)
        member = LeaderboardMember(**fields)
        member.user = User(id=3, username="ada", display_name="Ada")
        return member

    def test_individual_goal_used_in_individual_mode(self):
        board = _board(individual_goal_mode=True)
        normalize_goal_mode(board)
        member = self._member(goal={"measure": "time", "count": 120})
        assert member_goal(board, member) == {"time": 120}
        standing = build_participant(board, member, {"time": 90, "word": 5000})
        assert standing.progress == {"time": 90}
        assert standing.percent == pytest.approx(0.75)

    def test_member_without_goal_gets_no_tallies(self):
        board = _board(individual_goal_mode=True)
        normalize_goal_mode(board)
        member = self._member()
        assert member_scope(board, member).measures == ()
        standing = build_participant(board, member, {})
        assert standing.progress == {}
        assert standing.percent is None

    def test_shared_mode_reports_every_board_measure(self):
        board = _board(measures=["word", "page"], goal={"word": 1000})
        standing = build_participant(board, self._member(), {"word": 250})
        assert standing.progress == {"word": 250, "page": 0}
        assert standing.percent == pytest.approx(0.25)

    def test_display_name_falls_back_to_user(self):
        standing = build_participant(_board(), self._member(), {})
        assert standing.display_name == "Ada"
        masked = build_participant(_board(), self._member(display_name="Anon"), {})
        assert masked.display_name == "Anon"


class TestNormalization:
    def test_individual_mode_clears_shared_settings(self):
        board = _board(individual_goal_mode=True, fundraiser_mode=True, measures=["word"], goal={"word": 50000})
        normalize_goal_mode(board)
        assert board.goal == {}
        assert board.measures == []
        assert board.fundraiser_mode is False

    def test_shared_mode_untouched(self):
        board = _board(fundraiser_mode=True)
        normalize_goal_mode(board)
        assert board.goal == {"word": 1000}
        assert board.fundraiser_mode is True
