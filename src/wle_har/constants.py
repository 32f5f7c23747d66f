# ===== Raw Data Processing =====
NA_VALUES = ["NA", "", "#DIV/0!"]

OUTCOME_COL = 'classe'
SUBJECT_COL = 'user_name'

# row index, window/time-boundary markers and the problem identifier
NON_FEATURE_COLS = ['X', 'new_window', 'num_window', 'cvtd_timestamp', 'problem_id']

CLASSES = ['A', 'B', 'C', 'D', 'E']

REFERENCE = 'reference'
QUERY = 'query'
VALID_DTYPES = (REFERENCE, QUERY)

# ===== Model Training =====
RANDOM_SEED = 1234
N_FOLDS = 5
TUNE_LENGTH = 3
N_BAGS = 25

# console colours
ANSI_BLUE = "\033[94m"
ANSI_RED = "\033[91m"
ANSI_YELLOW = "\033[93m"
ANSI_GREEN = "\033[92m"
ANSI_RESET = "\033[0m"
