"""
Tests for round state views and the valid-action listing.
"""

from chukrum.round import (
    ActionChoice,
    ChukrumAction,
    QueenPeekRule,
    apply_action,
    RoundRules,
    StateTransitionEngine as STE,
    valid_actions,
)

ALICE = ["5♠", "9♥", "2♦", "K♣"]
BOB = ["3♠", "8♥", "A♦", "6♣"]


class TestAdapterFormat:
    """Tests for a single player's view of the round."""

    def test_cards_are_hidden_until_peeked(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["J♠"]), 0)
        state = STE.peek_own(state, 0, 2)

        view = state.to_adapter_format(0)
        assert view["players"][0]["cards"] == ["★", "★", "2♦", "★"]
        assert view["players"][1]["cards"] == ["★"] * 4
        assert view["drawn_card"] == "J♠"
        assert view["your_turn"] is True
        assert view["special_action"]["power"] == "JACK"

        other = state.to_adapter_format(1)
        assert other["players"][0]["cards"] == ["★"] * 4
        assert other["drawn_card"] is None
        assert other["special_action"] is None

    def test_everything_is_revealed_at_the_end(self, make_round):
        ended = STE.end_round(make_round([ALICE, BOB]), "Test")
        view = ended.to_adapter_format(1)

        assert view["players"][0]["cards"] == ALICE
        assert view["players"][0]["score"] == 29
        assert view["winner"] == "Bob"
        assert view["your_turn"] is False

    def test_to_dict_includes_hidden_information(self, make_round):
        data = make_round([ALICE, BOB], discard=["7♦"]).to_dict()
        assert data["players"][1]["hand"] == BOB
        assert data["discard_pile"] == ["7♦"]
        assert data["rules"]["queen_peek"] == "own_only"


class TestValidActions:
    """Tests for valid_actions."""

    def test_idle_turn(self, make_round):
        actions = valid_actions(make_round([ALICE, BOB]), 0)
        assert set(actions) == {ChukrumAction.DRAW, ChukrumAction.CHUKRUM}

    def test_match_offered_to_both_players(self, make_round):
        state = make_round([ALICE, BOB], discard=["4♥"])
        assert ChukrumAction.MATCH in valid_actions(state, 0)
        assert set(valid_actions(state, 1)) == {ChukrumAction.MATCH}

    def test_no_chukrum_in_the_final_round(self, make_round):
        called = STE.call_chukrum(make_round([ALICE, BOB]), 0)
        assert set(valid_actions(called, 1)) == {ChukrumAction.DRAW}

    def test_plain_drawn_card(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)
        actions = valid_actions(state, 0)
        assert set(actions) == {ChukrumAction.DISCARD, ChukrumAction.SWAP}
        assert actions[ChukrumAction.SWAP] == [(0,), (1,), (2,), (3,)]

    def test_king_offers_both_peeks(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["K♦"]), 0)
        assert set(valid_actions(state, 0)) == {
            ChukrumAction.PEEK_OWN,
            ChukrumAction.PEEK_OPPONENT,
        }

    def test_own_only_queen_swap_pairs(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["Q♥"]), 0)
        assert set(valid_actions(state, 0)) == {ChukrumAction.PEEK_OWN}

        state = STE.peek_own(state, 0, 1)
        actions = valid_actions(state, 0)
        assert actions[ChukrumAction.CROSS_SWAP] == [(1, 0), (1, 1), (1, 2), (1, 3)]
        assert ChukrumAction.DISCARD in actions

    def test_either_queen_offers_opponent_peek(self, make_round):
        rules = RoundRules(queen_peek=QueenPeekRule.EITHER)
        state = STE.draw(make_round([ALICE, BOB], top=["Q♥"], rules=rules), 0)
        assert ChukrumAction.PEEK_OPPONENT in valid_actions(state, 0)

    def test_every_listed_action_is_accepted(self, make_round):
        """Each offered action with each offered position changes the state."""
        state = STE.draw(make_round([ALICE, BOB], top=["K♦"], discard=["2♥"]), 0)
        state = STE.peek_own(state, 0, 0)
        for action, options in valid_actions(state, 0).items():
            if action == ChukrumAction.MATCH:
                continue
            for positions in options:
                choice = ActionChoice(action, positions)
                assert apply_action(state, 0, choice.action, *choice.positions) is not state

    def test_nothing_after_the_end(self, make_round):
        ended = STE.end_round(make_round([ALICE, BOB]), "Test")
        assert valid_actions(ended, 0) == {}


class TestActionChoice:
    def test_str_uses_one_based_positions(self):
        assert str(ActionChoice(ChukrumAction.CROSS_SWAP, (0, 2))) == "cross_swap 1 3"
        assert str(ActionChoice(ChukrumAction.DRAW)) == "draw"
