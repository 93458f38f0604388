"""Book-level progress and timing."""

import threading
import time


class MetricsTracker:
    """Track and display scraping progress across worker threads."""

    def __init__(self, total_books: int):
        self.total = total_books
        self.completed = 0
        self.failed = 0
        self.verses = 0
        self.average_book_time = 0.0
        self.lock = threading.Lock()
        self.start_time = time.time()
        self.book_start_times: dict[str, float] = {}

    def start_book(self, book: str):
        with self.lock:
            self.book_start_times[book] = time.time()

    def complete_book(self, book: str, verse_count: int):
        with self.lock:
            started = self.book_start_times.pop(book, None)
            self.completed += 1
            self.verses += verse_count
            if started is not None:
                elapsed = time.time() - started
                self.average_book_time += (elapsed - self.average_book_time) / self.completed
        self.print_progress(f"{book} ({verse_count} verses)")

    def record_error(self, book: str):
        with self.lock:
            self.book_start_times.pop(book, None)
            self.failed += 1

    def get_stats(self) -> dict:
        with self.lock:
            elapsed = time.time() - self.start_time
            remaining_books = self.total - self.completed - self.failed
            return {
                "completed": self.completed,
                "failed": self.failed,
                "total": self.total,
                "verses": self.verses,
                "elapsed": elapsed,
                "average": self.average_book_time,
                "remaining": max(remaining_books, 0) * self.average_book_time,
                "in_progress": sorted(self.book_start_times),
            }

    def print_progress(self, current_book: str = ""):
        stats = self.get_stats()
        done = stats["completed"] + stats["failed"]
        pct = done / stats["total"] * 100 if stats["total"] else 100.0
        filled = int(pct // 5)
        bar = "█" * filled + "░" * (20 - filled)
        remaining_str = time.strftime("%H:%M:%S", time.gmtime(stats["remaining"]))

        print(
            f"[{bar}] {pct:.0f}% ({done}/{stats['total']}) "
            f"📖 {current_book} | ~{remaining_str} remaining",
            flush=True,
        )

    def summary(self) -> str:
        stats = self.get_stats()
        success = stats["completed"] / stats["total"] * 100 if stats["total"] else 0.0
        return "\n".join([
            "Scraping Metrics Summary:",
            "=" * 60,
            f"Books completed: {stats['completed']}/{stats['total']}",
            f"Verses processed: {stats['verses']:,}",
            f"Errors encountered: {stats['failed']}",
            f"Elapsed time: {time.strftime('%H:%M:%S', time.gmtime(stats['elapsed']))}",
            f"Average book time: {stats['average']:.0f}s",
            f"Success rate: {success:.1f}%",
        ])
