from flask import Flask, request, jsonify
from flask_cors import CORS
from state import initialize_game, get_game_summary, GameState, GameError, GameMode
from models import Position
from turns import TurnError
from typing import Any, Dict, Optional
import random

app = Flask(__name__)
CORS(app)  # Enable CORS for all routes
games: Dict[str, GameState] = {}  # In-memory storage for game states


def _parse_position(data: Optional[Dict[str, Any]]) -> Position:
    """Read a {row, col} object from a request body."""
    if not isinstance(data, dict) or 'row' not in data or 'col' not in data:
        raise ValueError('Request must have row and col fields')
    try:
        return Position(int(data['row']), int(data['col']))
    except (TypeError, ValueError):
        raise ValueError('row and col must be integers')


def _last_rejection(game_state: GameState) -> Optional[str]:
    for entry in reversed(game_state.log):
        if entry.get('error_type') == 'validation_error':
            return entry['event']
    return None


def _action_response(game_state: GameState, applied: bool, action: str):
    """Return the updated state, or a 400 with the logged rejection reason."""
    if not applied:
        return jsonify({
            'error': f'{action} rejected',
            'reason': _last_rejection(game_state),
            'state': get_game_summary(game_state)
        }), 400
    return jsonify({'game_id': game_state.game_id, 'state': get_game_summary(game_state)})


@app.route('/api/game/new', methods=['POST'])
def new_game():
    """
    Create and start a new game.

    Body (all optional): p1_name, p2_name, mode ('single_player' or
    'two_player'), seed, god_cards {p1, p2}, workers {p1: [[r, c], [r, c]], p2: ...}.
    Workers not listed are placed at random.
    """
    try:
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({'error': 'Invalid JSON data'}), 400

        seed = data.get('seed')
        if seed is not None:
            try:
                seed = int(seed)
            except (ValueError, TypeError):
                return jsonify({'error': 'Seed must be an integer'}), 400

        try:
            mode = GameMode(data.get('mode', GameMode.TWO_PLAYER.value))
        except ValueError:
            return jsonify({'error': f"Invalid mode: {data.get('mode')}"}), 400

        game_state = initialize_game(
            data.get('p1_name', 'Player 1'),
            data.get('p2_name', 'Computer' if mode == GameMode.SINGLE_PLAYER else 'Player 2'),
            mode=mode,
            seed=seed
        )

        for player_id, card in (data.get('god_cards') or {}).items():
            game_state.assign_god_card(player_id, card)

        for player_id, positions in (data.get('workers') or {}).items():
            for index, (row, col) in enumerate(positions):
                if not game_state.place_worker(player_id, index, Position(int(row), int(col))):
                    return jsonify({'error': f'Cannot place worker {index} of {player_id} at ({row},{col})'}), 400

        game_state.place_workers_randomly(random.Random(seed))
        game_state.start()

        games[game_state.game_id] = game_state
        return jsonify({'game_id': game_state.game_id, 'state': get_game_summary(game_state)})

    except (GameError, ValueError, TypeError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to create game: {str(e)}'}), 500


@app.route('/api/game/<game_id>/state', methods=['GET'])
def get_game_state(game_id: str):
    """Retrieve the current game state for the given game ID."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        return jsonify(get_game_summary(games[game_id]))

    except Exception as e:
        return jsonify({'error': f'Failed to retrieve game state: {str(e)}'}), 500


@app.route('/api/game/<game_id>/select', methods=['POST'])
def select_worker(game_id: str):
    """Select the acting worker by zero-based index."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        game_state = games[game_id]

        data = request.get_json(silent=True)
        if data is None or 'worker' not in data:
            return jsonify({'error': 'Request must have a worker field'}), 400

        return _action_response(game_state, game_state.select_worker(data['worker']), 'Selection')

    except (GameError, TurnError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to select worker: {str(e)}'}), 500


@app.route('/api/game/<game_id>/unselect', methods=['POST'])
def unselect_worker(game_id: str):
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        game_state = games[game_id]
        return _action_response(game_state, game_state.unselect_worker(), 'Unselect')

    except (GameError, TurnError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to unselect worker: {str(e)}'}), 500


@app.route('/api/game/<game_id>/move', methods=['POST'])
def move_worker(game_id: str):
    """Move the selected worker to {row, col}."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        game_state = games[game_id]
        position = _parse_position(request.get_json(silent=True))
        return _action_response(game_state, game_state.move(position), 'Move')

    except (GameError, TurnError, ValueError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to move: {str(e)}'}), 500


@app.route('/api/game/<game_id>/build', methods=['POST'])
def build(game_id: str):
    """Build next to the selected worker at {row, col}."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        game_state = games[game_id]
        position = _parse_position(request.get_json(silent=True))
        return _action_response(game_state, game_state.build(position), 'Build')

    except (GameError, TurnError, ValueError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to build: {str(e)}'}), 500


@app.route('/api/game/<game_id>/skip', methods=['POST'])
def skip_bonus_action(game_id: str):
    """Decline a pending god-card bonus move or build."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        game_state = games[game_id]
        return _action_response(game_state, game_state.skip_bonus_action(), 'Skip')

    except (GameError, TurnError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to skip: {str(e)}'}), 500


@app.route('/api/game/<game_id>/switch', methods=['POST'])
def switch_turn(game_id: str):
    """Close the completed turn, check for a winner and pass play on."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        game_state = games[game_id]
        if not game_state.switch_turn():
            return jsonify({'error': 'Current turn is not complete'}), 400
        return jsonify({
            'game_id': game_id,
            'winner': game_state.winner.id if game_state.winner else None,
            'victory_type': game_state.victory_type,
            'state': get_game_summary(game_state)
        })

    except (GameError, TurnError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to switch turn: {str(e)}'}), 500


@app.route('/api/game/<game_id>/ai-turn', methods=['POST'])
def ai_turn(game_id: str):
    """Let the computer player take its whole turn."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        game_state = games[game_id]
        game_state.take_ai_turn()
        return jsonify({
            'game_id': game_id,
            'winner': game_state.winner.id if game_state.winner else None,
            'victory_type': game_state.victory_type,
            'state': get_game_summary(game_state)
        })

    except (GameError, TurnError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to play computer turn: {str(e)}'}), 500


@app.route('/api/game/<game_id>/timeout', methods=['POST'])
def timeout(game_id: str):
    """
    Report a timeout. With a player_id the player is eliminated outright;
    otherwise the acting player's clock is checked.
    """
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404
        game_state = games[game_id]

        data = request.get_json(silent=True) or {}
        player_id = data.get('player_id')
        if player_id is not None:
            if game_state.get_player_by_id(player_id) is None:
                return jsonify({'error': f'Player {player_id} not found'}), 400
            eliminated = player_id if game_state.eliminate_player(player_id) else None
        else:
            eliminated = game_state.check_time_and_eliminate()

        return jsonify({
            'game_id': game_id,
            'eliminated': eliminated,
            'winner': game_state.winner.id if game_state.winner else None,
            'victory_type': game_state.victory_type,
            'state': get_game_summary(game_state)
        })

    except (GameError, TurnError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to process timeout: {str(e)}'}), 500


@app.route('/api/game/<game_id>/log', methods=['GET'])
def get_game_log(game_id: str):
    """Retrieve the full game log for analysis."""
    try:
        if game_id not in games:
            return jsonify({'error': 'Game not found'}), 404

        game_state = games[game_id]

        log_response = {
            'game_id': game_id,
            'turn': game_state.turn,
            'phase': game_state.phase,
            'log': game_state.log
        }

        return jsonify(log_response)

    except Exception as e:
        return jsonify({'error': f'Failed to retrieve game log: {str(e)}'}), 500


if __name__ == '__main__':
    app.run(debug=True)
