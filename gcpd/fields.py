# gcpd/fields.py

import re
from typing import Dict, Mapping

NBSP = "\u00a0"

_SEPARATOR_RUN_RE = re.compile(r"[:–—\-/\\]+")
_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+", re.ASCII)

# Normalized label -> canonical key. Unknown labels pass through unchanged and
# end up as extra columns at export time.
CANONICAL_MAP: Dict[str, str] = {
    'reached_conclusion': 'reached_conclusion',
    'type': 'type',
    'map_index': 'map_index',
    'match_creation_time': 'match_creation_time',
    'match_ip': 'match_ip',
    'match_port': 'match_port',
    'datacenter': 'datacenter',
    'match_size': 'match_size',
    'join_time': 'join_time',
    'party_id_at_join': 'party_id_at_join',
    'team_at_join': 'team_at_join',
    'ping_estimate_at_join': 'ping_estimate_at_join',
    'joined_after_match_start': 'joined_after_match_start',
    'time_in_queue': 'time_in_queue',
    'match_end_time': 'match_end_time',
    'season_id': 'season_id',
    'match_status': 'match_status',
    'match_duration': 'match_duration',
    'red_team_final_score': 'red_team_final_score',
    'blu_team_final_score': 'blu_team_final_score',
    'winning_team': 'winning_team',
    'game_mode': 'game_mode',
    'win_reason': 'win_reason',
    'match_flags': 'match_flags',
    'match_included_bots': 'match_included_bots',
    'time_left_match': 'time_left_match',
    'result_partyid': 'result_partyid',
    'result_team': 'result_team',
    'result_score': 'result_score',
    'result_ping': 'result_ping',
    'result_player_flags': 'result_player_flags',
    'result_displayed_rating': 'result_displayed_rating',
    'result_displayed_rating_change': 'result_displayed_rating_change',
    'result_rank': 'result_rank',
    'classes_played': 'classes_played',
    'kills': 'kills',
    'deaths': 'deaths',
    'damage': 'damage',
    'healing': 'healing',
    'support': 'support',
    'score_medal': 'score_medal',
    'kills_medal': 'kills_medal',
    'damage_medal': 'damage_medal',
    'healing_medal': 'healing_medal',
    'support_medal': 'support_medal',
    'leave_reason': 'leave_reason',
    'connection_time': 'connection_time',
}

ORDERED_COLUMNS = (
    # identity/meta
    'match_id',
    'match_title',  # only when the table header is not "Match <n>"
    'type',
    'season_id',
    # times
    'match_creation_time',
    'connection_time',
    'join_time',
    'joined_after_match_start',
    'time_in_queue',
    'match_end_time',
    'time_left_match',
    # match info
    'game_mode',
    'map_index',
    'datacenter',
    'match_ip',
    'match_port',
    'match_size',
    'match_status',
    'match_duration',
    'match_flags',
    'match_included_bots',
    # team outcome
    'red_team_final_score',
    'blu_team_final_score',
    'winning_team',
    'win_reason',
    # join/party info
    'party_id_at_join',
    'team_at_join',
    'ping_estimate_at_join',
    # personal result
    'result_partyid',
    'result_team',
    'result_score',
    'result_ping',
    'result_player_flags',
    'result_displayed_rating',
    'result_displayed_rating_change',
    'result_rank',
    # performance
    'classes_played',
    'kills',
    'deaths',
    'damage',
    'healing',
    'support',
    # medals
    'score_medal',
    'kills_medal',
    'damage_medal',
    'healing_medal',
    'support_medal',
    # misc
    'leave_reason',
)


def normalize_key(label: str) -> str:
    """
    Convert a table label to a snake_case key.

    Examples:
        >>> normalize_key('Match Creation Time')
        'match_creation_time'
        >>> normalize_key('Party ID at Join')
        'party_id_at_join'
        >>> normalize_key('Result: Displayed Rating / Change')
        'result_displayed_rating_change'
    """
    text = (label or '').replace(NBSP, ' ').strip()
    text = _SEPARATOR_RUN_RE.sub(' ', text)
    text = _NON_WORD_RE.sub('', text)
    return _WHITESPACE_RE.sub('_', text.lower())


def canonicalize(normalized_key: str, canonical_map: Mapping[str, str] = CANONICAL_MAP) -> str:
    return canonical_map.get(normalized_key, normalized_key)
