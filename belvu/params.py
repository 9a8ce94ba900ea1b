"""
Parameter files for Belvu

A parameter file is a headerless list of 'key = value' lines. Comments
(#), blank lines and [section] lines are skipped. Unknown keys are kept
as strings.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from .codes import colour_from_name
from .colors import scheme_by_name
from .conservation import ConservationMode, ConservationSettings
from .store import Alignment

DEFAULT_PARAMS: Dict[str, Any] = {
    # Conservation colouring
    'conservation_mode': 'blosum',
    'ignore_gaps': False,
    'low_id_cutoff': 0.4,
    'mid_id_cutoff': 0.6,
    'max_id_cutoff': 0.8,
    'low_sim_cutoff': 0.5,
    'mid_sim_cutoff': 1.5,
    'max_sim_cutoff': 3.0,
    'low_color': 'LIGHTGRAY',
    'mid_color': 'MIDBLUE',
    'max_color': 'CYAN',
    'color_by_res_id': False,
    'color_by_res_id_cutoff': 20.0,
    'color_scheme': 'erik',
    # Alignment handling
    'penalize_gaps': False,
    'save_separator': '/',
    'save_coords': True,
    'strip_coords': True,
    'organism_label': 'OS',
    'rm_empty_columns': True,
    # Output
    'default_format': 'stockholm',
    'wrap_width': 80,
}

INT_KEYS = {'wrap_width'}
FLOAT_KEYS = {
    'low_id_cutoff', 'mid_id_cutoff', 'max_id_cutoff',
    'low_sim_cutoff', 'mid_sim_cutoff', 'max_sim_cutoff',
    'color_by_res_id_cutoff',
}
BOOL_KEYS = {
    'ignore_gaps', 'color_by_res_id', 'penalize_gaps',
    'save_coords', 'strip_coords', 'rm_empty_columns',
}

MODES = {
    'blosum': ConservationMode.BLOSUM,
    'id': ConservationMode.ID,
    'id_blosum': ConservationMode.ID_BLOSUM,
}


def load_params(params_file: Optional[Union[str, Path]]) -> Dict[str, Any]:
    """
    Load parameters from a .params file over the defaults.

    A missing file gives the defaults.
    """
    params = dict(DEFAULT_PARAMS)

    if params_file is None:
        return params
    params_file = Path(params_file)
    if not params_file.exists():
        return params

    for line in params_file.read_text().split('\n'):
        line = line.strip()

        # Skip comments and empty lines
        if not line or line.startswith('#') or line.startswith('['):
            continue

        if '=' in line:
            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            try:
                if key in INT_KEYS:
                    params[key] = int(value)
                elif key in FLOAT_KEYS:
                    params[key] = float(value)
                elif key in BOOL_KEYS:
                    params[key] = value.lower() in ('true', 'yes', '1')
                else:
                    params[key] = value
            except ValueError:
                raise ValueError(f"Bad value for {key} in {params_file}: {value}")

    return params


def _colour_param(params: Dict[str, Any], key: str) -> int:
    colour = colour_from_name(str(params[key]))
    if colour is None:
        raise ValueError(f"Unknown colour for {key}: {params[key]}")
    return colour


def settings_from_params(params: Dict[str, Any]) -> ConservationSettings:
    mode = str(params['conservation_mode']).lower()
    if mode not in MODES:
        raise ValueError(f"Unknown conservation mode: {params['conservation_mode']}. "
                         f"Supported: {', '.join(MODES)}")

    return ConservationSettings(
        mode=MODES[mode],
        ignore_gaps=params['ignore_gaps'],
        low_id_cutoff=params['low_id_cutoff'],
        mid_id_cutoff=params['mid_id_cutoff'],
        max_id_cutoff=params['max_id_cutoff'],
        low_sim_cutoff=params['low_sim_cutoff'],
        mid_sim_cutoff=params['mid_sim_cutoff'],
        max_sim_cutoff=params['max_sim_cutoff'],
        low_color=_colour_param(params, 'low_color'),
        mid_color=_colour_param(params, 'mid_color'),
        max_color=_colour_param(params, 'max_color'),
        color_by_res_id=params['color_by_res_id'],
        color_by_res_id_cutoff=params['color_by_res_id_cutoff'],
        scheme=scheme_by_name(params['color_scheme']),
    )


def apply_params(alignment: Alignment, params: Dict[str, Any]) -> Alignment:
    """Copy alignment-level switches and conservation settings"""
    alignment.penalize_gaps = params['penalize_gaps']
    alignment.save_separator = params['save_separator']
    alignment.save_coords = params['save_coords']
    alignment.strip_coords = params['strip_coords']
    alignment.organism_label = params['organism_label']
    alignment.rm_empty_columns_on = params['rm_empty_columns']
    alignment.conservation_settings = settings_from_params(params)
    alignment.invalidate_conservation()
    return alignment
