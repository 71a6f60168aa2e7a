from game.views.admin_handlers import delete_games as delete_games
from game.views.admin_handlers import delete_players as delete_players
from game.views.admin_handlers import list_games as list_games
from game.views.admin_handlers import list_players as list_players
from game.views.game_handlers import create_game as create_game
from game.views.game_handlers import game_action as game_action
from game.views.game_handlers import get_game as get_game
from game.views.game_handlers import join_game as join_game
from game.views.player_handlers import login as login
from game.views.player_handlers import profile as profile
from game.views.player_handlers import resume as resume
