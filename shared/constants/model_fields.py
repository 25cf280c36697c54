# shared/constants/model_fields.py

"""
CONSTANT choice values and limits used across every app.
NO DEPENDENCIES - safe to import from models, services and settings.
"""

# Expertise marker for the reserve instructor pool
STANDBY_TAG = 'standby'

# Study semesters run 1..MAX_SEMESTER; beyond that a student graduates
MAX_SEMESTER = 8

# Start-time slots offered to schedule detail screens (display format)
TIME_OPTIONS = [
    '07.20', '08.10', '09.00', '09.50', '10.40', '11.30', '12.35',
    '13.25', '14.15', '15.05', '15.35', '16.25', '17.15',
]


class GroupKind:
    SMALL = 'small'
    LARGE = 'large'

    choices = (
        (SMALL, 'Small Group'),
        (LARGE, 'Large Group'),
    )
    values = (SMALL, LARGE)


class PersonRole:
    STUDENT = 'student'
    INSTRUCTOR = 'instructor'
    COORDINATOR = 'coordinator'

    choices = (
        (STUDENT, 'Student'),
        (INSTRUCTOR, 'Instructor'),
        (COORDINATOR, 'Academic Coordinator'),
    )


class PersonStatus:
    ACTIVE = 'active'
    GRADUATED = 'graduated'
    WITHDRAWN = 'withdrawn'

    choices = (
        (ACTIVE, 'Active'),
        (GRADUATED, 'Graduated'),
        (WITHDRAWN, 'Withdrawn'),
    )


class TermSeason:
    ODD = 'odd'
    EVEN = 'even'

    choices = (
        (ODD, 'Odd Semester'),
        (EVEN, 'Even Semester'),
    )


class ModuleCategory:
    BLOCK = 'block'
    NON_BLOCK = 'non_block'

    choices = (
        (BLOCK, 'Block'),
        (NON_BLOCK, 'Non Block'),
    )


class NonBlockType:
    CSR = 'csr'
    OTHER = 'other'

    choices = (
        (CSR, 'Clinical Skill (CSR)'),
        (OTHER, 'Other'),
    )


class ScheduleType:
    PBL = 'pbl'
    LECTURE = 'lecture'
    PRACTICUM = 'practicum'
    JOURNAL_READING = 'journal_reading'
    SPECIAL_AGENDA = 'special_agenda'
    CSR = 'csr'

    choices = (
        (PBL, 'Problem Based Learning'),
        (LECTURE, 'Large Lecture'),
        (PRACTICUM, 'Practicum'),
        (JOURNAL_READING, 'Journal Reading'),
        (SPECIAL_AGENDA, 'Special Agenda'),
        (CSR, 'Clinical Skill Session'),
    )

    # Sections rendered on the block module detail screen
    BLOCK_SECTIONS = (PBL, LECTURE, PRACTICUM, JOURNAL_READING, SPECIAL_AGENDA)


class AuditAction:
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'
    REPLACE = 'replace'
    ASSIGN = 'assign'
    UNASSIGN = 'unassign'
    ACTIVATE = 'activate'
