import time


# Current wall-clock time as integer milliseconds since the epoch. Wall clock rather than monotonic, since
# start instants have to mean something to the next process too.
def now_ms():
    return time.time_ns() // 1_000_000


# Formats a millisecond duration as H:MM:SS.mmm. Hours are never padded or capped, negatives clamp to zero.
def format_time(ms):
    ms = max(0, int(ms))
    h, rem = divmod(ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, millis = divmod(rem, 1000)
    return f"{h}:{m:02d}:{s:02d}.{millis:03d}"
