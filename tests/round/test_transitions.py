"""
Tests for the Chukrum round state machine.

This module drives StateTransitionEngine with stacked decks and checks the
turn cycle, the special-card powers, match-discards and the Chukrum call.
"""

import random

import pytest

from chukrum.common.card import Card, Rank, Suit
from chukrum.events import EventBus, EngineEventType
from chukrum.round import (
    ActionKind,
    AwaitingFirstPeek,
    AwaitingSecondPeek,
    ChukrumAction,
    PlayerState,
    Power,
    QueenPeekRule,
    ReadyToResolve,
    RoundPhase,
    RoundRules,
    StateTransitionEngine as STE,
    TurnStep,
    apply_action,
    captured_events,
)

ALICE = ["5♠", "9♥", "2♦", "K♣"]
BOB = ["3♠", "8♥", "A♦", "6♣"]


def codes(hand):
    return [card.code for card in hand]


@pytest.fixture
def captured():
    """Collect every emitted event as (name, data)."""
    events = []
    EventBus.get_instance().on_any(events.append)
    return events


def names(events):
    return [name for name, _ in events]


class TestNewRound:
    """Tests for dealing a round."""

    def test_deals_hands_from_the_top(self):
        players = (PlayerState(name="A"), PlayerState(name="B"))
        deck = [Card(Suit.SPADES, rank) for rank in Rank] + [
            Card(Suit.HEARTS, rank) for rank in Rank
        ]
        state = STE.new_round(players, deck=deck)

        assert codes(state.hand_of(0)) == ["K♥", "Q♥", "J♥", "10♥"]
        assert codes(state.hand_of(1)) == ["9♥", "8♥", "7♥", "6♥"]
        assert state.deck_size == len(deck) - 8
        assert state.phase == RoundPhase.PLAYING
        assert state.step == TurnStep.IDLE

    def test_shuffled_round_accounts_for_52_cards(self, captured):
        players = (PlayerState(name="A"), PlayerState(name="B"))
        state = STE.new_round(players, starting_index=1, rng=random.Random(4))

        assert state.has_full_deck()
        assert state.deck_size == 44
        assert state.current_player_index == 1
        assert "ROUND_STARTED" in names(captured)

    def test_requires_two_players(self):
        with pytest.raises(ValueError):
            STE.new_round((PlayerState(),))


class TestDraw:
    """Tests for drawing."""

    def test_draw_takes_the_top_card(self, make_round):
        state = make_round([ALICE, BOB], top=["4♣"])
        new_state = STE.draw(state, 0)

        assert new_state.drawn_card == Card.from_code("4♣")
        assert new_state.step == TurnStep.CARD_DRAWN
        assert new_state.special_action is None
        assert new_state.deck_size == state.deck_size - 1
        assert new_state.has_full_deck()

    def test_second_draw_is_rejected(self, make_round, captured):
        state = STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)
        assert STE.draw(state, 0) is state
        assert "ACTION_REJECTED" in names(captured)

    def test_draw_out_of_turn_is_rejected(self, make_round):
        state = make_round([ALICE, BOB])
        assert STE.draw(state, 1) is state

    @pytest.mark.parametrize(
        "code,power", [("J♠", Power.JACK), ("Q♥", Power.QUEEN), ("K♦", Power.KING)]
    )
    def test_special_cards_start_awaiting_first_peek(self, make_round, code, power):
        state = STE.draw(make_round([ALICE, BOB], top=[code]), 0)
        assert state.special_action == AwaitingFirstPeek(power)

    def test_captured_events_stay_off_the_bus(self, make_round, captured):
        with captured_events() as held:
            STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)

        assert captured == []
        assert [(event.name, data["card"]) for event, data in held] == [
            ("CARD_DRAWN", "4♣")
        ]

        STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)
        assert names(captured) == ["CARD_DRAWN"]

    def test_empty_deck_ends_the_round(self, make_round):
        state = make_round([ALICE, BOB], full_deck=False)
        new_state = STE.draw(state, 0)

        assert new_state.is_ended
        assert new_state.result.reason == "Deck is empty"


class TestDiscardAndSwap:
    """Tests for resolving a plain drawn card."""

    def test_discard_completes_the_turn(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)
        new_state = STE.discard(state, 0)

        assert new_state.top_discard == Card.from_code("4♣")
        assert new_state.drawn_card is None
        assert new_state.current_player_index == 1
        assert new_state.turn_number == 2
        assert new_state.has_full_deck()

    def test_swap_replaces_and_discards_the_old_card(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)
        new_state = STE.swap_own(state, 0, 3)

        assert codes(new_state.hand_of(0)) == ["5♠", "9♥", "2♦", "4♣"]
        assert new_state.top_discard == Card.from_code("K♣")
        assert new_state.last_action.kind == ActionKind.SWAP_OWN
        assert new_state.has_full_deck()

    def test_swap_invalid_position_is_rejected(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)
        assert STE.swap_own(state, 0, 4) is state

    def test_special_card_cannot_be_swapped_in(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["J♠"]), 0)
        assert STE.swap_own(state, 0, 0) is state

    def test_discard_without_drawing_is_rejected(self, make_round):
        state = make_round([ALICE, BOB])
        assert STE.discard(state, 0) is state


class TestJack:
    """Tests for the Jack's single own peek."""

    def test_jack_allows_exactly_one_peek(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["J♠"]), 0)
        peeked = STE.peek_own(state, 0, 1)

        assert peeked.special_action == ReadyToResolve(Power.JACK, own_position=1)
        assert peeked.peeks_for(0)[0].card == Card.from_code("9♥")
        # A second peek in the same draw does nothing
        assert STE.peek_own(peeked, 0, 2) is peeked

    def test_jack_cannot_peek_the_opponent(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["J♠"]), 0)
        assert STE.peek_opponent(state, 0, 0) is state

    def test_jack_must_peek_before_discard(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["J♠"]), 0)
        assert STE.discard(state, 0) is state

        resolved = STE.discard(STE.peek_own(state, 0, 0), 0)
        assert resolved.top_discard == Card.from_code("J♠")
        assert resolved.current_player_index == 1
        assert resolved.peek_markers == ()

    def test_jack_cannot_cross_swap(self, make_round):
        state = STE.peek_own(STE.draw(make_round([ALICE, BOB], top=["J♠"]), 0), 0, 0)
        assert STE.cross_swap(state, 0, 0, 0) is state


class TestQueen:
    """Tests for the Queen's peek and optional blind swap."""

    def test_own_only_queen_swaps_the_peeked_card(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["Q♥"]), 0)
        state = STE.peek_own(state, 0, 1)
        swapped = STE.cross_swap(state, 0, 1, 0)

        assert codes(swapped.hand_of(0)) == ["5♠", "3♠", "2♦", "K♣"]
        assert codes(swapped.hand_of(1)) == ["9♥", "8♥", "A♦", "6♣"]
        assert swapped.top_discard == Card.from_code("Q♥")
        assert swapped.current_player_index == 1
        assert swapped.has_full_deck()

    def test_queen_must_use_the_peeked_card(self, make_round):
        state = STE.peek_own(STE.draw(make_round([ALICE, BOB], top=["Q♥"]), 0), 0, 1)
        assert STE.cross_swap(state, 0, 2, 0) is state

    def test_own_only_queen_cannot_peek_the_opponent(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["Q♥"]), 0)
        assert STE.peek_opponent(state, 0, 0) is state

    def test_either_queen_may_peek_the_opponent(self, make_round):
        rules = RoundRules(queen_peek=QueenPeekRule.EITHER)
        state = STE.draw(make_round([ALICE, BOB], top=["Q♥"], rules=rules), 0)
        peeked = STE.peek_opponent(state, 0, 2)

        assert peeked.special_action == ReadyToResolve(Power.QUEEN, opponent_position=2)
        swapped = STE.cross_swap(peeked, 0, 3, 2)
        assert codes(swapped.hand_of(0))[3] == "A♦"
        assert codes(swapped.hand_of(1))[2] == "K♣"

    def test_queen_may_decline_the_swap(self, make_round):
        state = STE.peek_own(STE.draw(make_round([ALICE, BOB], top=["Q♥"]), 0), 0, 0)
        discarded = STE.discard(state, 0)
        assert codes(discarded.hand_of(0)) == ALICE
        assert discarded.top_discard == Card.from_code("Q♥")


class TestKing:
    """Tests for the King's two peeks."""

    def test_king_peeks_both_sides_then_swaps(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["K♦"]), 0)
        first = STE.peek_opponent(state, 0, 2)
        assert first.special_action == AwaitingSecondPeek(Power.KING, opponent_position=2)
        # Not resolvable after a single peek
        assert STE.discard(first, 0) is first
        assert STE.cross_swap(first, 0, 3, 2) is first

        second = STE.peek_own(first, 0, 3)
        assert second.special_action == ReadyToResolve(
            Power.KING, own_position=3, opponent_position=2
        )
        assert len(second.peeks_for(0)) == 2

        swapped = STE.cross_swap(second, 0, 3, 2)
        assert codes(swapped.hand_of(0)) == ["5♠", "9♥", "2♦", "A♦"]
        assert codes(swapped.hand_of(1)) == ["3♠", "8♥", "K♣", "6♣"]
        assert swapped.has_full_deck()

    def test_king_swap_must_use_both_peeked_positions(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["K♦"]), 0)
        state = STE.peek_own(STE.peek_opponent(state, 0, 2), 0, 3)
        assert STE.cross_swap(state, 0, 0, 2) is state
        assert STE.cross_swap(state, 0, 3, 0) is state

    def test_king_cannot_peek_the_same_side_twice(self, make_round):
        state = STE.peek_own(STE.draw(make_round([ALICE, BOB], top=["K♦"]), 0), 0, 0)
        assert STE.peek_own(state, 0, 1) is state


class TestMatchDiscard:
    """Tests for match-discards and penalties."""

    def test_correct_match_shrinks_hand_and_grows_discard(self, make_round, captured):
        state = make_round([ALICE, BOB], discard=["5♥"])
        matched = STE.match_discard(state, 0, 0)

        assert len(matched.hand_of(0)) == 3
        assert len(matched.discard_pile) == 2
        assert matched.top_discard == Card.from_code("5♠")
        assert matched.has_full_deck()
        assert "MATCH_DISCARD" in names(captured)

    def test_match_allowed_outside_own_turn(self, make_round):
        state = make_round([ALICE, BOB], discard=["3♥"], current=0)
        matched = STE.match_discard(state, 1, 0)
        assert codes(matched.hand_of(1)) == ["8♥", "A♦", "6♣"]
        assert matched.current_player_index == 0

    def test_match_restricted_to_turn_owner_when_configured(self, make_round):
        rules = RoundRules(match_discard_any_turn=False)
        state = make_round([ALICE, BOB], discard=["3♥"], rules=rules)
        assert STE.match_discard(state, 1, 0) is state

    def test_wrong_match_draws_a_penalty(self, make_round, captured):
        state = make_round([ALICE, BOB], top=["4♣"], discard=["3♥"])
        penalised = STE.match_discard(state, 0, 0)

        assert codes(penalised.hand_of(0)) == ALICE + ["4♣"]
        assert penalised.discard_pile == state.discard_pile
        assert penalised.deck_size == state.deck_size - 1
        assert penalised.has_full_deck()
        assert "PENALTY_CARD" in names(captured)

    def test_wrong_match_with_empty_deck_only_sets_a_notice(self, make_round):
        state = make_round([ALICE, BOB], discard=["3♥"], full_deck=False)
        missed = STE.match_discard(state, 0, 0)

        assert missed is not state
        assert missed.hand_of(0) == state.hand_of(0)
        assert missed.last_action.kind == ActionKind.MATCH_MISS
        assert "no penalty" in missed.notice

    def test_duplicate_sevens_scenario(self, make_round):
        state = make_round(
            [["7♣", "7♣"], BOB], discard=["2♠", "7♦"], full_deck=False
        )
        matched = STE.match_discard(state, 0, 0)

        assert codes(matched.hand_of(0)) == ["7♣"]
        assert codes(matched.discard_pile) == ["2♠", "7♦", "7♣"]

    def test_emptying_a_hand_ends_the_round(self, make_round):
        state = make_round([["4♠"], BOB], discard=["4♥"])
        matched = STE.match_discard(state, 0, 0)
        assert matched.is_ended
        assert matched.result.winner_index == 0

    def test_no_match_while_a_card_is_drawn(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["4♣"], discard=["5♥"]), 0)
        assert STE.match_discard(state, 0, 0) is state

    def test_no_match_on_empty_discard(self, make_round):
        state = make_round([ALICE, BOB])
        assert STE.match_discard(state, 0, 0) is state


class TestChukrum:
    """Tests for the Chukrum call and the final round."""

    def test_call_then_two_turns_ends_the_round(self, make_round, captured):
        state = make_round([ALICE, BOB], top=["10♠", "10♥"])
        called = STE.call_chukrum(state, 0)

        assert called.phase == RoundPhase.FINAL_ROUND
        assert called.chukrum_caller_index == 0
        assert called.current_player_index == 1
        assert called.final_round_turns_remaining == 2

        after_bob = STE.discard(STE.draw(called, 1), 1)
        assert after_bob.phase == RoundPhase.FINAL_ROUND
        assert after_bob.current_player_index == 0

        ended = STE.discard(STE.draw(after_bob, 0), 0)
        assert ended.phase == RoundPhase.ENDED
        assert ended.result.reason == "Final round complete"
        assert ended.result.scores == (29, 18)
        assert ended.result.winner_index == 1
        assert ended.has_full_deck()
        assert names(captured).count("ROUND_ENDED") == 1

    def test_chukrum_cannot_be_called_twice(self, make_round):
        called = STE.call_chukrum(make_round([ALICE, BOB]), 0)
        assert STE.call_chukrum(called, 1) is called

    def test_chukrum_only_before_drawing(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)
        assert STE.call_chukrum(state, 0) is state

    def test_chukrum_only_on_own_turn(self, make_round):
        state = make_round([ALICE, BOB])
        assert STE.call_chukrum(state, 1) is state

    def test_tie_has_no_winner(self, make_round):
        state = make_round([["5♠", "2♦"], ["5♥", "2♣"]])
        ended = STE.end_round(state, "Test")
        assert ended.result.is_tie
        assert ended.result.winner_index is None

    def test_end_round_returns_held_card_to_discard(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)
        ended = STE.end_round(state, "Abandoned")
        assert ended.drawn_card is None
        assert ended.top_discard == Card.from_code("4♣")
        assert ended.has_full_deck()

    def test_actions_after_end_are_rejected(self, make_round):
        ended = STE.end_round(make_round([ALICE, BOB], discard=["5♥"]), "Test")
        assert STE.draw(ended, 0) is ended
        assert STE.match_discard(ended, 0, 0) is ended
        assert STE.end_round(ended, "Again") is ended


class TestPanicShuffle:
    """Tests for the opponent hand shuffle."""

    def test_panic_permutes_the_opponent_hand(self, make_round, captured):
        state = STE.draw(make_round([ALICE, BOB], top=["4♣"]), 0)
        shuffled = STE.panic_shuffle(state, 0, random.Random(0))

        assert sorted(codes(shuffled.hand_of(1))) == sorted(BOB)
        assert codes(shuffled.hand_of(1)) != BOB
        assert codes(shuffled.hand_of(0)) == ALICE
        assert shuffled.top_discard == Card.from_code("4♣")
        assert shuffled.current_player_index == 1
        assert shuffled.has_full_deck()
        assert "HAND_SHUFFLED" in names(captured)

    def test_panic_needs_a_plain_drawn_card(self, make_round):
        state = STE.draw(make_round([ALICE, BOB], top=["J♠"]), 0)
        assert STE.panic_shuffle(state, 0) is state
        idle = make_round([ALICE, BOB])
        assert STE.panic_shuffle(idle, 0) is idle


class TestActionToken:
    """Tests for the in-flight action token."""

    def test_second_claim_is_refused(self, make_round):
        state = STE.claim_action_token(make_round([ALICE, BOB]), "first")
        assert state.action_token == "first"
        assert STE.claim_action_token(state, "second") is state

    def test_release_requires_the_same_token(self, make_round):
        state = STE.claim_action_token(make_round([ALICE, BOB]), "first")
        assert STE.release_action_token(state, "other") is state
        assert STE.release_action_token(state, "first").action_token is None

    def test_end_round_clears_the_token(self, make_round):
        state = STE.claim_action_token(make_round([ALICE, BOB]), "first")
        ended = STE.end_round(state, "Test")
        assert ended.action_token is None
        assert STE.claim_action_token(ended, "late") is ended


class TestCardConservation:
    """Every transition keeps all 52 cards accounted for."""

    def test_scripted_sequence(self, make_round):
        rules = RoundRules(queen_peek=QueenPeekRule.EITHER)
        state = make_round(
            [ALICE, BOB],
            top=["4♣", "10♣", "Q♦", "K♦", "J♣", "7♠"],
            rules=rules,
        )
        steps = [
            (ChukrumAction.DRAW, 0),
            (ChukrumAction.SWAP, 0, 0),
            (ChukrumAction.MATCH, 1, 3),  # 6♣ against 5♠: penalty 10♣
            (ChukrumAction.DRAW, 1),
            (ChukrumAction.PEEK_OPPONENT, 1, 1),
            (ChukrumAction.CROSS_SWAP, 1, 2, 1),
            (ChukrumAction.DRAW, 0),
            (ChukrumAction.PEEK_OWN, 0, 0),
            (ChukrumAction.PEEK_OPPONENT, 0, 0),
            (ChukrumAction.DISCARD, 0),
            (ChukrumAction.CHUKRUM, 1),
            (ChukrumAction.DRAW, 0),
            (ChukrumAction.PEEK_OWN, 0, 2),
            (ChukrumAction.DISCARD, 0),
            (ChukrumAction.DRAW, 1),
            (ChukrumAction.SWAP, 1, 0),
        ]
        for action, player, *args in steps:
            new_state = apply_action(state, player, action, *args)
            assert new_state is not state, f"{action} by {player} was rejected"
            assert new_state.has_full_deck()
            state = new_state

        assert state.is_ended

    def test_apply_action_accepts_names(self, make_round):
        state = make_round([ALICE, BOB], top=["4♣"])
        assert apply_action(state, 0, "draw").drawn_card == Card.from_code("4♣")

    def test_apply_action_rejects_unknown_names(self, make_round):
        with pytest.raises(ValueError):
            apply_action(make_round([ALICE, BOB]), 0, "fold")
