"""
Quick sanity test: paced GETs against a set of URLs.
Run: uv run examples/fetch_with_cloudburst.py
"""
import os
import tempfile

from cloudburst import RequestDispatcher, RunConfig

URLS = [
    "https://example.com/",
    "https://httpbin.org/get",
] * 10

def main():
    with tempfile.NamedTemporaryFile("w", suffix=".txt", delete=False) as f:
        f.write("\n".join(URLS))
        input_file = f.name

    config = RunConfig(
        input_file=input_file,
        limit=len(URLS),
        chunk_size=6,
        time_range=2000,
        min_distance=50,
        timeout=int(os.getenv("HTTP_REQUEST_TIMEOUT_MS", "10000")),
        no_body=True,
        response_time_output="",
    )
    d = RequestDispatcher(config, use_progress_bar=True, histogram_bins=24)
    d.run()
    print(d.report())
    os.unlink(input_file)

if __name__ == "__main__":
    main()
