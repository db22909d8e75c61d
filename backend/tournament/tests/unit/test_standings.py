import pytest

from shared.dal.models import MatchFormat, Player
from tournament.logic.exceptions import MalformedResultsError
from tournament.logic.standings import compute_magic_number, compute_player_records, compute_standings
from tournament.logic.types import Side
from tournament.tests.conftest import A, B, H, create_match, create_results, create_session, create_teams


def _standings(sessions, matches, results):
    return compute_standings("t1", sessions, matches, results)


class TestComputeStandings:
    def test_empty_trip(self):
        standings = _standings([], [], {})

        assert standings.team_a_points == 0
        assert standings.team_b_points == 0
        assert standings.leader is None
        assert standings.total_matches == 0
        assert standings.sessions == ()

    def test_halved_match_splits_session_weight(self):
        session = create_session(points_per_match=2.0)
        match = create_match("m1", session.id)

        standings = _standings([session], [match], {"m1": create_results("m1", [H] * 18)})

        assert standings.team_a_points == 1.0
        assert standings.team_b_points == 1.0
        assert standings.leader is None
        assert standings.margin == 0
        assert standings.matches_completed == 1

    def test_completed_wins_weighted_by_session(self):
        day1 = create_session("s1", session_number=1, points_per_match=1.0)
        day2 = create_session("s2", session_number=2, points_per_match=2.0)
        matches = [create_match("m1", "s1"), create_match("m2", "s2")]
        results = {
            "m1": create_results("m1", [A] * 10),
            "m2": create_results("m2", [B] * 10),
        }

        standings = _standings([day1, day2], matches, results)

        assert standings.team_a_points == 1.0
        assert standings.team_b_points == 2.0
        assert standings.leader == Side.TEAM_B
        assert standings.margin == 1.0
        assert [s.session_id for s in standings.sessions] == ["s1", "s2"]
        assert standings.sessions[1].team_b_points == 2.0

    def test_in_progress_match_is_live_not_counted(self):
        session = create_session()
        match = create_match("m1", session.id)

        standings = _standings([session], [match], {"m1": create_results("m1", [A, A])})

        assert standings.team_a_points == 0
        assert standings.matches_in_progress == 1
        assert standings.matches_completed == 0
        assert len(standings.live_matches) == 1
        live = standings.live_matches[0]
        assert live.match_id == "m1"
        assert live.leading_team == Side.TEAM_A
        assert live.short_score == "2 UP"
        assert standings.team_a_projected == 1.0
        assert standings.team_b_projected == 0

    def test_all_square_live_match_projects_half_each(self):
        session = create_session(points_per_match=2.0)
        match = create_match("m1", session.id)

        standings = _standings([session], [match], {"m1": create_results("m1", [A, B])})

        assert standings.team_a_projected == 1.0
        assert standings.team_b_projected == 1.0

    def test_unstarted_match_is_neither_live_nor_completed(self):
        session = create_session()
        match = create_match("m1", session.id)

        standings = _standings([session], [match], {})

        assert standings.live_matches == ()
        assert standings.total_matches == 1
        assert standings.points_remaining == 1.0

    def test_points_are_conserved(self):
        session = create_session(points_per_match=1.5)
        matches = [create_match(f"m{i}", session.id, match_number=i) for i in range(1, 5)]
        results = {
            "m1": create_results("m1", [A] * 10),
            "m2": create_results("m2", [H] * 18),
            "m3": create_results("m3", [B, B]),
        }

        standings = _standings([session], matches, results)

        assert standings.points_available == 6.0
        assert standings.team_a_points + standings.team_b_points + standings.points_remaining == 6.0

    def test_results_are_deterministic(self):
        sessions = [create_session("s2", session_number=2), create_session("s1", session_number=1)]
        matches = [create_match("m2", "s2"), create_match("m1", "s1"), create_match("m3", "s1", match_number=2)]
        results = {"m1": create_results("m1", [A]), "m3": create_results("m3", [B])}

        first = _standings(sessions, matches, results)
        second = _standings(list(reversed(sessions)), list(reversed(matches)), results)

        assert first == second
        assert [m.match_id for m in first.live_matches] == ["m1", "m3"]

    def test_other_trip_sessions_are_skipped(self):
        ours = create_session("s1", "t1")
        theirs = create_session("s9", "t9")
        matches = [create_match("m1", "s1"), create_match("m9", "s9")]
        results = {"m9": create_results("m9", [A] * 10)}

        standings = _standings([ours, theirs], matches, results)

        assert standings.total_matches == 1
        assert standings.team_a_points == 0

    def test_match_with_unknown_session_raises(self):
        with pytest.raises(MalformedResultsError, match="unknown session"):
            _standings([create_session("s1")], [create_match("m1", "missing")], {})


class TestPlayerRecords:
    def test_weighted_win_loss_halve_leaderboard(self):
        teams = create_teams()
        team_a, team_b = teams
        players = [
            Player(id="pa1", first_name="Ann", last_name="Alder", team_id=team_a.id),
            Player(id="pa2", first_name="Bea", last_name="Birch", team_id=team_a.id),
            Player(id="pb1", first_name="Cal", last_name="Cedar", team_id=team_b.id),
            Player(id="pb2", first_name="Dan", last_name="Dogwood", team_id=team_b.id),
        ]
        singles = create_session("s1", session_number=1, points_per_match=1.0)
        pairs = create_session("s2", session_number=2, points_per_match=2.0)
        matches = [
            create_match("m1", "s1", team_a_player_ids=("pa1",), team_b_player_ids=("pb1",)),
            create_match(
                "m2",
                "s2",
                team_a_player_ids=("pa1", "pa2"),
                team_b_player_ids=("pb1", "pb2"),
                match_format=MatchFormat.FOURBALL,
            ),
            create_match("m3", "s1", match_number=2, team_a_player_ids=("pa2",), team_b_player_ids=("pb2",)),
        ]
        results = {
            "m1": create_results("m1", [A] * 10),
            "m2": create_results("m2", [H] * 18),
            "m3": create_results("m3", [B, B]),
        }

        records = compute_player_records("t1", players, teams, [singles, pairs], matches, results)

        by_id = {r.player_id: r for r in records}
        assert by_id["pa1"].record == "1-0-1"
        assert by_id["pa1"].points == 2.0
        assert by_id["pb1"].record == "0-1-1"
        assert by_id["pb1"].points == 1.0
        assert by_id["pa2"].matches_played == 1
        assert by_id["pa2"].team_name == "Eagles"
        assert records[0].player_id == "pa1"

    def test_ties_broken_by_name(self):
        teams = create_teams()
        players = [
            Player(id="p2", first_name="Zed", last_name="Young", team_id=teams[0].id),
            Player(id="p1", first_name="Amy", last_name="Young", team_id=teams[0].id),
        ]

        records = compute_player_records("t1", players, teams, [], [], {})

        assert [r.player_id for r in records] == ["p1", "p2"]
        assert all(r.record == "0-0-0" for r in records)

    def test_players_outside_trip_are_skipped(self):
        teams = create_teams()
        stranger = Player(id="px", first_name="X", last_name="Y", team_id="elsewhere")

        assert compute_player_records("t1", [stranger], teams, [], [], {}) == []


class TestMagicNumber:
    def _trip(self, a_wins: int, b_wins: int, total: int = 4):
        session = create_session()
        matches = [create_match(f"m{i}", session.id, match_number=i) for i in range(total)]
        results = {}
        for i in range(a_wins):
            results[f"m{i}"] = create_results(f"m{i}", [A] * 10)
        for i in range(a_wins, a_wins + b_wins):
            results[f"m{i}"] = create_results(f"m{i}", [B] * 10)
        return _standings([session], matches, results)

    def test_default_target_is_strict_majority(self):
        magic = compute_magic_number(self._trip(0, 0))

        assert magic.points_to_win == 2.5
        assert magic.team_a_needed == 2.5
        assert magic.team_a_can_clinch
        assert magic.clinched_by is None

    def test_leader_can_still_be_caught(self):
        magic = compute_magic_number(self._trip(2, 0))

        assert magic.team_a_needed == 0.5
        assert magic.team_b_needed == 2.5
        assert magic.team_a_can_clinch
        assert not magic.team_b_can_clinch

    def test_clinched(self):
        magic = compute_magic_number(self._trip(3, 0))

        assert magic.clinched_by == Side.TEAM_A
        assert magic.team_a_needed == 0

    def test_explicit_target(self):
        magic = compute_magic_number(self._trip(1, 1), points_to_win=1.0)

        assert magic.clinched_by == Side.TEAM_A
        assert magic.team_b_needed == 0
