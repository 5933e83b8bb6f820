"""
Standard parameter and state identifiers.

Client models number their own parameters from ``LAST_PARM + 1`` and their
own states from ``LAST_STATE + 1``.
"""

# ============================================================================
# PARAMETER IDS
# ============================================================================

INTERIM_REPORT_PARM = 0
START_DATE_PARM = 1
MORTALITY_RISK_PARM = 2
TIME_STEP_SIZE_PARM = 3     # component 0: length of one iteration (years)
NUM_TIME_STEPS_PARM = 4
PROB_MALE_PARM = 5
LAST_PARM = 6

# Ages 0..119 per sex in a mortality table
NUM_MORTALITY_PARMS = 120

# ============================================================================
# STATE IDS
# ============================================================================

CURRENT_DATE_STATE = 0
DOB_STATE = 1
ALIVE_STATE = 2
DEATH_AGE_STATE = 3
SEX_STATE = 4
LAST_STATE = 5

# ============================================================================
# STATE VALUES
# ============================================================================

MALE = 0
FEMALE = 1

DEAD = 0
ALIVE = 1

PARAMETER_NAMES = {
    INTERIM_REPORT_PARM: "interim_report",
    START_DATE_PARM: "start_date",
    MORTALITY_RISK_PARM: "mortality_risk",
    TIME_STEP_SIZE_PARM: "time_step_size",
    NUM_TIME_STEPS_PARM: "num_time_steps",
    PROB_MALE_PARM: "prob_male",
}

STATE_NAMES = {
    CURRENT_DATE_STATE: "current_date",
    DOB_STATE: "dob",
    ALIVE_STATE: "alive",
    DEATH_AGE_STATE: "death_age",
    SEX_STATE: "sex",
}
