"""Starter .leakguard.toml templates."""

DEFAULT_TOML = """\
# leakguard configuration
version = "1.0"

[scan]
workers = 4
queue_size = 64            # fragments buffered between git and the workers
max_line_length = 100000   # longer lines are skipped (0 = no cap)
max_file_size_kb = 1024    # directory scans only
# log_opts = "--since=2024-01-01 main"

[output]
format = "terminal"        # terminal | json | sarif
redact = "partial"         # none | partial | full
show_summary = true
exit_code = 1

[ruleset]
use_default = true
# enable = ["github-pat", "aws-access-token"]   # empty = all enabled
# disable = ["generic-api-key"]

[baseline]
# path = "leakguard-baseline.json"
# keep_known = false

[log]
level = "warning"

# [[allowlists]]
# description = "test fixtures"
# paths = ['''^tests/fixtures/''']
# stopwords = ["example"]
"""

FULL_TOML = DEFAULT_TOML + """
# Custom rules use the same keys as the built-in ones.
# [[rules]]
# id = "internal-token"
# description = "Internal service token"
# regex = '''itk_[a-z0-9]{32}'''
# keywords = ["itk_"]
# entropy = 3.0
# true_positives = ['token = "itk_0a1b2c3d4e5f6a7b8c9d0e1f2a3b4c5d"']
# false_positives = ['token = "itk_00000000000000000000000000000000"']
#
# [[rules.allowlists]]
# condition = "any"           # any | all
# regex_target = "line"       # secret | match | line
# regexes = ['''(?i)fixture''']

[ci]
# annotation_format = "github"   # github | none
# full_redaction = true
"""
