# Markers handled by the pipeline
MARKERS = ("16S", "ITS")

# Conda environment
CONDA_ENV_NAME = "QCandDemux"
CONDA_CHANNEL = "bioconda"
CONDA_PACKAGES = ["py", "nanopack", "seqkit", "vsearch", "edlib"]

# General
THREADS = 8

# Read length and quality thresholds
MIN_READ_LENGTH = 800
MAX_READ_LENGTH = 7500
MIN_READ_QUALITY = 15

# NanoPlot
NANOPLOT_PLOT_TYPE = "kde"

# Dorado
BARCODING_KIT = "SQK-NBD114-96"

# VSEARCH (--orient was added in 2.16)
MIN_VSEARCH_VERSION = "2.16"

# Minibar
MINIBAR_URL = "https://raw.githubusercontent.com/calacademy-research/minibar/master/minibar.py"
MINIBAR_EDIT_DISTANCE = 4
MINIBAR_PRIMER_EDIT_DISTANCE = 8
MINIBAR_MIN_LENGTH = 120
