"""
CLI play mode for Santorini.

Human vs computer or two humans at one keyboard on the 5x5 board. ASCII
renderer, god card choice, random worker placement, command entry, full
game loop with per-player clocks.

Usage: python play_cli.py
"""

import random
from typing import List, Optional

from ai import HeuristicStrategy
from cards import GodCard, parse_god_card
from models import Position
from state import GameMode, GameState, initialize_game
from turns import TurnError, TurnState


# ---------------------------------------------------------------------------
# ASCII Renderer
# ---------------------------------------------------------------------------


def render_board(game: GameState, highlight: Optional[List[Position]] = None) -> str:
    """
    Render the board as text.

    Each cell shows its height (or 'D' for a dome) followed by the worker
    label standing on it, e.g. '2A1'. Highlighted cells are wrapped in [].
    """
    heights = game.board.height_map()
    marked = set(highlight or [])
    lines = ["     " + "".join(f"  {c}   " for c in range(game.board.size))]
    for row in range(game.board.size):
        cells = []
        for col in range(game.board.size):
            cell = game.board.get_cell(Position(row, col))
            level = "D" if cell.has_dome else str(heights[row, col])
            occupant = cell.worker.label if cell.worker else ".."
            text = f"{level}{occupant}"
            cells.append(f"[{text}]" if cell.position in marked else f" {text} ")
        lines.append(f"  {row}  " + " ".join(cells))
    return "\n".join(lines)


def show_status(game: GameState):
    player = game.current_player
    turn = game.current_turn
    print()
    print(render_board(game))
    print()
    for p in game.players:
        remaining = game.remaining_time(p.id) or 0.0
        minutes, seconds = divmod(max(0, int(remaining)), 60)
        marker = ">" if p is player else " "
        print(f" {marker} {p.name} ({p.marker}) card: {p.god_card.value}  time: {minutes:02d}:{seconds:02d}")
    if turn is not None:
        print(f"  Turn {turn.number}: {player.name} - {turn.state.value.replace('_', ' ')}")


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def choose_mode() -> GameMode:
    """Let the player pick single player or hot-seat."""
    print("\nChoose mode:")
    print("  1. Single player (vs computer)")
    print("  2. Two players (hot-seat)")
    while True:
        raw = input("Pick (1 or 2): ").strip()
        if raw == "1":
            return GameMode.SINGLE_PLAYER
        if raw == "2":
            return GameMode.TWO_PLAYER
        print("  Enter 1 or 2")


def choose_god_card(name: str) -> GodCard:
    """Let a player pick their god card."""
    cards = list(GodCard)
    print(f"\n{name}, choose a god card:")
    for i, card in enumerate(cards, 1):
        print(f"  {i}. {card.value:8s} {card.description}")
    while True:
        raw = input("Pick (number or name): ").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(cards):
            return cards[int(raw) - 1]
        try:
            return parse_god_card(raw)
        except ValueError:
            print(f"  Enter 1-{len(cards)} or a card name")


# ---------------------------------------------------------------------------
# Turn entry
# ---------------------------------------------------------------------------


def _parse_target(tokens: List[str]) -> Optional[Position]:
    if len(tokens) < 3:
        return None
    try:
        return Position(int(tokens[1]), int(tokens[2]))
    except ValueError:
        return None


def _hint(game: GameState) -> None:
    turn = game.current_turn
    if turn.state in (TurnState.MOVING, TurnState.SECOND_MOVE):
        targets = turn.legal_moves()
    elif turn.state in (TurnState.BUILDING, TurnState.SECOND_BUILD):
        targets = turn.legal_builds()
    else:
        print("  Select a worker first.")
        return
    print(render_board(game, highlight=targets))
    print("  Options: " + ", ".join(str(p) for p in targets))


def play_human_turn(game: GameState) -> bool:
    """
    Read commands until the current turn completes.

    Returns:
        False if the player asked to quit
    """
    turn = game.current_turn
    print("\nCommands:")
    print("  select <1|2>        - choose a worker")
    print("  unselect            - change worker before moving")
    print("  move <row> <col>    - move the selected worker")
    print("  build <row> <col>   - build next to the selected worker")
    print("  skip                - decline a bonus move or build")
    print("  hint                - show legal targets")
    print("  auto                - let the computer finish this turn")
    print("  quit                - leave the game")

    while not turn.is_complete:
        if game.check_time_and_eliminate():
            return True
        if game.can_take_additional_action():
            print(f"  {turn.card.value} offers a bonus {'move' if turn.state == TurnState.SECOND_MOVE else 'build'} (or 'skip').")

        raw = input(f"{turn.player.marker}> ").strip().lower()
        if not raw:
            continue
        tokens = raw.split()
        cmd = tokens[0]

        if cmd == "quit":
            return False
        if cmd == "hint":
            _hint(game)
            continue
        if cmd == "auto":
            HeuristicStrategy().play_turn(turn.player, turn, game.board,
                                          game.get_opponent(turn.player.id), random.Random())
            continue

        try:
            if cmd == "select":
                if len(tokens) < 2 or not tokens[1].isdigit():
                    print("  Usage: select <1|2>")
                    continue
                ok = game.select_worker(int(tokens[1]) - 1)
            elif cmd == "unselect":
                ok = game.unselect_worker()
            elif cmd in ("move", "build"):
                target = _parse_target(tokens)
                if target is None:
                    print(f"  Usage: {cmd} <row> <col>")
                    continue
                ok = game.move(target) if cmd == "move" else game.build(target)
            elif cmd == "skip":
                ok = game.skip_bonus_action()
            else:
                print(f"  Unknown command: {cmd}")
                continue
        except TurnError as e:
            print(f"  {e}")
            continue

        if not ok:
            reason = next((e['event'] for e in reversed(game.log)
                           if e.get('error_type') == 'validation_error'), None)
            print(f"  Not allowed{': ' + reason if reason else '.'}")
        else:
            print(render_board(game))

    return True


# ---------------------------------------------------------------------------
# Main Game Loop
# ---------------------------------------------------------------------------


def main():
    print("=" * 50)
    print("  SANTORINI  -  CLI Play Mode")
    print("=" * 50)

    mode = choose_mode()
    p1_name = input("Player 1 name: ").strip() or "Player 1"
    if mode == GameMode.SINGLE_PLAYER:
        p2_name = "Computer"
    else:
        p2_name = input("Player 2 name: ").strip() or "Player 2"

    seed = random.randint(0, 99999)
    print(f"\nSeed: {seed}")
    game = initialize_game(p1_name, p2_name, mode=mode, seed=seed)

    game.assign_god_card("p1", choose_god_card(p1_name))
    p2 = game.get_player_by_id("p2")
    if p2.is_computer:
        card = random.Random(seed).choice(list(GodCard))
        game.assign_god_card("p2", card)
        print(f"\n{p2_name} takes {card.value}.")
    else:
        game.assign_god_card("p2", choose_god_card(p2_name))

    game.place_workers_randomly(random.Random(seed))
    game.start()

    while not game.is_over:
        show_status(game)
        if game.current_player.is_computer:
            start = len(game.log)
            game.take_ai_turn()
            for entry in game.log[start:]:
                print(f"  {entry['event']}")
            continue
        if not play_human_turn(game):
            print("\nGame abandoned.")
            return
        if not game.is_over:
            game.switch_turn()

    print()
    print(render_board(game))
    print("\n" + "=" * 50)
    print(f"  {game.winner.name} wins by {game.victory_type}!")
    print(f"  Final turn: {game.turn}")
    print("=" * 50)


if __name__ == "__main__":
    main()
