"""
Tests for the Indian Rummy scoring engine.
"""

import pytest

from indian_rummy.engine.base import DeclarationType, GameScore, Meld, MeldType, Player
from indian_rummy.engine.scoring import LobbyScore, ScoringEngine


class TestCardPoints:
    """Tests for individual card values."""

    @pytest.mark.parametrize("rank,points", [
        ("2", 2),
        ("7", 7),
        ("10", 10),
        ("J", 10),
        ("Q", 10),
        ("K", 10),
        ("A", 10),
    ])
    def test_natural_cards(self, card, rank, points):
        """Test face values and the 10-point high cards."""
        assert ScoringEngine.card_points(card(rank, "spades")) == points

    def test_jokers_are_free(self, card, joker):
        """Test printed and wild jokers score nothing."""
        assert ScoringEngine.card_points(joker()) == 0
        assert ScoringEngine.card_points(card("K", "hearts", wild=True)) == 0


class TestDeadwood:
    def test_all_joker_hand(self, card, joker):
        """Test a hand of only jokers has no deadwood."""
        hand = [joker(), joker(), card("9", "clubs", wild=True)]
        assert ScoringEngine.calculate_deadwood(hand) == 0

    def test_king_and_ace(self, card):
        """Test king and ace count 10 each."""
        assert ScoringEngine.calculate_deadwood([card("K", "spades"), card("A", "hearts")]) == 20

    def test_empty(self):
        """Test no cards means no deadwood."""
        assert ScoringEngine.calculate_deadwood([]) == 0

    def test_meld_points(self, card, joker):
        """Test meld points ignore jokers."""
        assert ScoringEngine.calculate_meld_points([card("8"), joker(), card("10")]) == 18

    def test_hand_score_excludes_own_melds(self, card):
        """Test cards in declared melds are not counted."""
        run = [card("4"), card("5"), card("6")]
        loose = card("Q", "clubs")
        hand = run + [loose]
        assert ScoringEngine.hand_score(hand) == 25
        assert ScoringEngine.hand_score(hand, [Meld.of(MeldType.SEQUENCE, run)]) == 10


class TestDropPenalty:
    def test_first_drop(self):
        """Test the first-drop penalty is 20."""
        assert ScoringEngine.drop_penalty(DeclarationType.FIRST_DROP) == 20

    def test_middle_drop(self):
        """Test the middle-drop penalty is 40."""
        assert ScoringEngine.drop_penalty(DeclarationType.MIDDLE_DROP) == 40

    def test_not_a_drop(self):
        """Test a non-drop declaration type is rejected."""
        with pytest.raises(ValueError, match="not a drop type"):
            ScoringEngine.drop_penalty(DeclarationType.VALID)


@pytest.fixture
def table(card):
    """Three seated players; carol dropped early."""
    return [
        Player(id="alice", display_name="Alice", hand=(card("2"), card("3"))),
        Player(id="bob", display_name="Bob", hand=(card("K", "clubs"), card("5", "clubs"))),
        Player(id="carol", display_name="Carol", hand=(card("9"),), has_dropped=True,
               drop_type=DeclarationType.FIRST_DROP, score=20),
    ]


class TestScoreValidDeclaration:
    def test_winner_and_losers(self, table, winning_melds):
        """Test the winner scores 0 while the others score deadwood or their drop penalty."""
        lines = ScoringEngine.score_valid_declaration(table, "alice", winning_melds)
        alice, bob, carol = lines

        assert alice.score == 0
        assert alice.is_winner
        assert alice.declaration_type is DeclarationType.VALID
        assert alice.melds == tuple(winning_melds)

        assert bob.score == 15
        assert not bob.is_winner
        assert bob.declaration_type is None

        assert carol.score == 20
        assert carol.declaration_type is DeclarationType.FIRST_DROP

    def test_lines_follow_player_order(self, table):
        """Test score lines come out in seating order."""
        lines = ScoringEngine.score_valid_declaration(table, "bob", [])
        assert [line.player_id for line in lines] == ["alice", "bob", "carol"]
        assert [line.is_winner for line in lines] == [False, True, False]


class TestScoreInvalidDeclaration:
    def test_declarer_penalized_others_zero(self, table):
        """Test only the declarer pays for an invalid declaration."""
        lines = ScoringEngine.score_invalid_declaration(table, "bob", [])
        scores = {line.player_id: line.score for line in lines}
        assert scores == {"alice": 0, "bob": 80, "carol": 0}
        assert not any(line.is_winner for line in lines)
        assert lines[1].declaration_type is DeclarationType.INVALID


class TestScoreLastSurvivor:
    def test_survivor_wins(self, table, card):
        """Test the sole survivor wins with 0."""
        table[1] = Player(id="bob", display_name="Bob", has_dropped=True,
                          drop_type=DeclarationType.MIDDLE_DROP, score=40)
        lines = ScoringEngine.score_last_survivor(table, "alice")
        assert [(line.player_id, line.score) for line in lines] == [
            ("alice", 0), ("bob", 40), ("carol", 20)
        ]
        assert lines[0].is_winner
        assert lines[1].declaration_type is DeclarationType.MIDDLE_DROP


class TestLobbyScores:
    """Tests for the running lobby tally."""

    def test_first_game(self):
        """Test totals for a lobby's first game."""
        lines = [
            GameScore(player_id="alice", player_name="Alice", score=0, is_winner=True),
            GameScore(player_id="bob", player_name="Bob", score=35),
        ]
        totals = ScoringEngine.tally_lobby_scores({}, lines)
        assert totals["alice"] == LobbyScore(total_score=0, games_played=1, games_won=1, best_hand=0)
        assert totals["bob"] == LobbyScore(total_score=35, games_played=1, games_won=0, best_hand=35)

    def test_accumulates(self):
        """Test a later game adds to existing totals."""
        existing = {
            "bob": LobbyScore(total_score=35, games_played=1, games_won=0, best_hand=35),
            "dave": LobbyScore(total_score=10, games_played=1, games_won=1, best_hand=10),
        }
        lines = [GameScore(player_id="bob", player_name="Bob", score=12)]
        totals = ScoringEngine.tally_lobby_scores(existing, lines)
        assert totals["bob"] == LobbyScore(total_score=47, games_played=2, games_won=0, best_hand=12)
        assert totals["dave"] is existing["dave"]

    def test_existing_not_mutated(self):
        """Test tallying returns new totals."""
        existing = {"bob": LobbyScore(total_score=5, games_played=1)}
        ScoringEngine.tally_lobby_scores(
            existing, [GameScore(player_id="bob", player_name="Bob", score=7)]
        )
        assert existing["bob"].total_score == 5

    def test_win_rate(self):
        """Test win rate with and without games played."""
        assert LobbyScore().win_rate == 0.0
        assert LobbyScore(games_played=4, games_won=1).win_rate == 0.25

    def test_dict_conversion(self):
        """Test totals survive conversion to and from a dict."""
        score = LobbyScore(total_score=40, games_played=2, games_won=1, best_hand=0)
        assert LobbyScore.from_dict(score.to_dict()) == score
        assert LobbyScore.from_dict({}) == LobbyScore()
