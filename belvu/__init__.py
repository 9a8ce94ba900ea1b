from .errors import (
    BelvuError, AlignmentParseError, AlignmentEditError, SegmentError,
)
from .codes import Colour, blosum, is_gap, is_align, is_residue
from .colors import (
    ColorScheme, SCHEMES, scheme_by_name, read_color_codes, save_color_codes,
    set_organism_colors,
)
from .conservation import (
    ConservationMode, ConservationSettings, ConservationMatrices,
    compute_conservation, conservation_table, format_conservation_table,
    residue_probabilities,
)
from .store import (
    Alignment, AlignmentRow, MarkupType, OrganismEntry, array_find, align_find,
)
from .alignment import (
    identity, score, aln_overhang, list_identity, format_identity_list,
)
from .sequence_io import (
    FileFormat, sniff, parse_alignment, read_alignment, write_alignment,
    format_from_extension, format_from_name, read_scores,
)
from .sorting import SortType, SORT_CODES, do_sort, highlight_score_sort
from .editing import (
    rm_column, rm_columns, rm_empty_columns, rm_gappy_columns, rm_gappy_seqs,
    rm_partial_seqs, mk_non_redundant, rm_outliers, rm_score,
    rm_column_cutoff, rm_selected,
)
from .match import Segment, make_seg_list, insert_columns, read_match, read_match_file
from .params import load_params, settings_from_params, apply_params
