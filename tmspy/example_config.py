# example_config.py
# Example TMS pulse-finding config.
# This is an example config - you will need to consider the contents carefully.

# Channel
elec            = "Cz"          # channel with the clearest TMS artifact; None => Cz, else first channel
units           = "uV"          # thresholds below are in these units

# Detection
dtrend          = "poly"        # 'poly' | 'linear' | 'off'
poly_order      = 6             # low order so a single pulse is not absorbed into the baseline
thrshtype       = "dynamic"     # 'dynamic' | 'median' | a number, e.g. 1000 (µV)
wpeaks          = "pos"         # 'pos' | 'neg' | 'gui' (needs an operator boundary)
tmsLabel        = "TMS"         # label for single pulses

# Paired pulses (leave empty to disable)
ISI             = []            # ms between conditioning and test pulse, e.g. [3, 100]
pairLabel       = []            # one label per ISI, e.g. ["SICI", "LICI"]
isi_tolerance_ms = 1.0

# Repetitive trains (leave None to disable; cannot be combined with paired)
# e.g. 10 Hz rTMS, 4 s on / 26 s off: ITI = 2600, pulseNum = 40
ITI             = None
pulseNum        = None

# QC
plots           = False         # save a sanity-check plot per recording
qc_dir          = "./output/qc_plots"

# Logging
verbose         = True
