"""Standings computed from real ledgers."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.db.models import Leaderboard, LeaderboardMember, User
from inkwell.leaderboards.aggregator import aggregate_leaderboard
from inkwell.leaderboards.membership import join_leaderboard, update_participation
from inkwell.leaderboards.schemas import (
    CreateLeaderboardRequest,
    CreateTeamRequest,
    JoinLeaderboardRequest,
    UpdateParticipationRequest,
)
from inkwell.leaderboards.service import create_leaderboard
from inkwell.leaderboards.teams import create_team
from inkwell.ledger.schemas import CreateTallyRequest
from inkwell.ledger.service import append_tally
from inkwell.works.schemas import CreateWorkRequest
from inkwell.works.service import create_work


async def _create_user(db: AsyncSession, username: str) -> User:
    user = User(username=username, display_name=username.title())
    db.add(user)
    await db.flush()
    return user


async def _tally(db: AsyncSession, user: User, day: date, count: int, measure: str = "word", **kwargs):
    await append_tally(db, user.id, CreateTallyRequest(date=day, measure=measure, count=count, **kwargs))


async def _board(db: AsyncSession, owner: User, **kwargs) -> Leaderboard:
    fields = {
        "title": "January",
        "measures": ["word"],
        "goal": {"word": 1000},
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 1, 31),
        "is_joinable": True,
    }
    fields.update(kwargs)
    return await create_leaderboard(db, owner.id, CreateLeaderboardRequest(**fields))


async def _join(db: AsyncSession, board: Leaderboard, user: User, **fields) -> LeaderboardMember:
    """Join with the board's code, as an invited writer would."""
    request = JoinLeaderboardRequest(join_code=board.join_code, **fields)
    return await join_leaderboard(db, board, user.id, request)


class TestSharedGoal:
    @pytest.mark.asyncio
    async def test_ranked_by_percent(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        ada = await _create_user(db_session, "ada")
        bo = await _create_user(db_session, "bo")
        board = await _board(db_session, owner)
        await _join(db_session, board, ada)
        await _join(db_session, board, bo, display_name="B.")

        await _tally(db_session, ada, date(2024, 1, 3), 400)
        await _tally(db_session, bo, date(2024, 1, 4), 700)

        standings = await aggregate_leaderboard(db_session, board)
        assert [(p.display_name, p.rank, p.percent) for p in standings.participants] == [
            ("B.", 1, 0.7),
            ("Ada", 2, 0.4),
        ]
        assert standings.teams is None
        assert standings.total is None

    @pytest.mark.asyncio
    async def test_spectators_excluded(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        watcher = await _create_user(db_session, "watcher")
        board = await _board(db_session, owner)
        await _join(db_session, board, watcher, is_participant=False)
        await _tally(db_session, watcher, date(2024, 1, 3), 400)

        standings = await aggregate_leaderboard(db_session, board)
        assert standings.participants == []

    @pytest.mark.asyncio
    async def test_owner_counts_once_participating(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        board = await _board(db_session, owner)
        await _tally(db_session, owner, date(2024, 1, 3), 250)
        assert (await aggregate_leaderboard(db_session, board)).participants == []

        await update_participation(db_session, board, owner.id, UpdateParticipationRequest(is_participant=True))
        [standing] = (await aggregate_leaderboard(db_session, board)).participants
        assert standing.progress == {"word": 250}

    @pytest.mark.asyncio
    async def test_board_window_and_measures(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        ada = await _create_user(db_session, "ada")
        board = await _board(db_session, owner)
        await _join(db_session, board, ada)

        await _tally(db_session, ada, date(2023, 12, 31), 5000)
        await _tally(db_session, ada, date(2024, 1, 15), 300)
        await _tally(db_session, ada, date(2024, 1, 16), 120, measure="time")
        await _tally(db_session, ada, date(2024, 2, 1), 5000)

        [standing] = (await aggregate_leaderboard(db_session, board)).participants
        assert standing.progress == {"word": 300}
        assert standing.percent == pytest.approx(0.3)

    @pytest.mark.asyncio
    async def test_member_work_scope(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        ada = await _create_user(db_session, "ada")
        board = await _board(db_session, owner)
        novel = await create_work(db_session, ada.id, CreateWorkRequest(title="Novel"))
        await _join(db_session, board, ada, work_ids=[novel.id])

        await _tally(db_session, ada, date(2024, 1, 2), 600, work_id=novel.id)
        await _tally(db_session, ada, date(2024, 1, 2), 900)

        [standing] = (await aggregate_leaderboard(db_session, board)).participants
        assert standing.progress == {"word": 600}

    @pytest.mark.asyncio
    async def test_progress_reflects_latest_ledger(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        ada = await _create_user(db_session, "ada")
        board = await _board(db_session, owner)
        await _join(db_session, board, ada)

        await _tally(db_session, ada, date(2024, 1, 2), 100)
        assert (await aggregate_leaderboard(db_session, board)).participants[0].progress == {"word": 100}
        await _tally(db_session, ada, date(2024, 1, 3), 50)
        assert (await aggregate_leaderboard(db_session, board)).participants[0].progress == {"word": 150}


class TestIndividualGoals:
    @pytest.mark.asyncio
    async def test_each_member_measured_against_own_goal(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        ada = await _create_user(db_session, "ada")
        bo = await _create_user(db_session, "bo")
        cy = await _create_user(db_session, "cy")
        board = await _board(db_session, owner, individual_goal_mode=True)
        await _join(db_session, board, ada, goal={"measure": "word", "count": 2000})
        await _join(db_session, board, bo, goal={"measure": "time", "count": 60})
        await _join(db_session, board, cy)

        await _tally(db_session, ada, date(2024, 1, 2), 500)
        await _tally(db_session, bo, date(2024, 1, 2), 45, measure="time")
        await _tally(db_session, bo, date(2024, 1, 2), 9000)
        await _tally(db_session, cy, date(2024, 1, 2), 9000)

        standings = await aggregate_leaderboard(db_session, board)
        by_user = {p.user_id: p for p in standings.participants}
        assert by_user[ada.id].progress == {"word": 500}
        assert by_user[ada.id].percent == pytest.approx(0.25)
        assert by_user[bo.id].progress == {"time": 45}
        assert by_user[bo.id].percent == pytest.approx(0.75)
        assert by_user[cy.id].progress == {}
        assert by_user[cy.id].percent is None
        assert [p.user_id for p in standings.participants] == [bo.id, ada.id, cy.id]


class TestTeamsAndFundraiser:
    @pytest.mark.asyncio
    async def test_team_rollup(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        ada = await _create_user(db_session, "ada")
        bo = await _create_user(db_session, "bo")
        cy = await _create_user(db_session, "cy")
        board = await _board(db_session, owner, enable_teams=True)
        owls = await create_team(db_session, board, owner.id, CreateTeamRequest(name="Owls"))
        larks = await create_team(db_session, board, owner.id, CreateTeamRequest(name="Larks"))
        await _join(db_session, board, ada, team_id=owls.id)
        await _join(db_session, board, bo, team_id=owls.id)
        await _join(db_session, board, cy, team_id=larks.id)

        await _tally(db_session, ada, date(2024, 1, 2), 1000)
        await _tally(db_session, bo, date(2024, 1, 2), 200)
        await _tally(db_session, cy, date(2024, 1, 2), 800)

        standings = await aggregate_leaderboard(db_session, board)
        assert [(t.name, t.progress, t.percent) for t in standings.teams] == [
            ("Larks", {"word": 800}, pytest.approx(0.8)),
            ("Owls", {"word": 1200}, pytest.approx(0.6)),
        ]

    @pytest.mark.asyncio
    async def test_fundraiser_pool(self, db_session: AsyncSession):
        owner = await _create_user(db_session, "owner")
        ada = await _create_user(db_session, "ada")
        bo = await _create_user(db_session, "bo")
        board = await _board(db_session, owner, fundraiser_mode=True)
        await _join(db_session, board, ada)
        await _join(db_session, board, bo)

        await _tally(db_session, ada, date(2024, 1, 2), 300)
        await _tally(db_session, bo, date(2024, 1, 2), 450)

        standings = await aggregate_leaderboard(db_session, board)
        assert standings.total == {"word": 750}
        assert standings.total_percent == pytest.approx(0.75)
