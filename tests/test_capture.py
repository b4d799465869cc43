from voicetest.speech.capture import SpeechCaptureAdapter

from conftest import FakeRecognizer


class Recorder:
	def __init__(self):
		self.interim, self.final, self.errors, self.ends, self.starts = [], [], [], [], 0

	def adapter(self, recognizer):
		def on_start():
			self.starts += 1

		return SpeechCaptureAdapter(
			recognizer,
			on_interim=self.interim.append,
			on_final=self.final.append,
			on_error=self.errors.append,
			on_start=on_start,
			on_end=self.ends.append,
		)


def test_single_pass_at_a_time():
	rec = FakeRecognizer()
	capture = Recorder().adapter(rec)
	assert rec.sink is capture
	assert capture.start()
	assert not capture.start()
	assert capture.listening
	assert rec.started == [1]


def test_interim_then_single_final():
	rec, events = FakeRecognizer(), Recorder()
	capture = events.adapter(rec)
	capture.start()
	capture.handle_start(1)
	capture.handle_results([("forty", False)], 1)
	capture.handle_results([("forty five", True)], 1)
	capture.handle_results([("forty five again", True)], 1)
	capture.handle_end(1)
	assert events.starts == 1
	assert events.interim == ["forty"]
	assert events.final == ["forty five"]
	assert events.ends == [False]
	assert not capture.listening


def test_events_for_old_pass_are_ignored():
	rec, events = FakeRecognizer(), Recorder()
	capture = events.adapter(rec)
	capture.start()
	capture.stop()
	capture.start()
	capture.handle_results([("stale", True)], 1)
	capture.handle_error("network", 1)
	assert events.final == []
	assert events.errors == []
	capture.handle_results([("fresh", True)], 2)
	assert events.final == ["fresh"]


def test_error_settles_pass():
	rec, events = FakeRecognizer(), Recorder()
	capture = events.adapter(rec)
	capture.start()
	capture.handle_error("no-speech", 1)
	capture.handle_end(1)
	assert events.errors == ["no-speech"]
	assert events.ends == []
	assert not capture.listening


def test_silent_end_and_idempotent_stop():
	rec, events = FakeRecognizer(), Recorder()
	capture = events.adapter(rec)
	capture.start()
	capture.handle_end(1)
	assert events.ends == [True]
	capture.stop()
	assert rec.stops == 0
	capture.start()
	capture.stop()
	capture.stop()
	assert rec.stops == 1
	capture.close()
	assert rec.closed


def test_blank_final_result_still_settles_pass():
	rec, events = FakeRecognizer(), Recorder()
	capture = events.adapter(rec)
	capture.start()
	capture.handle_results([("   ", True)], 1)
	capture.handle_results([("late words", True)], 1)
	capture.handle_end(1)
	assert events.final == [""]
	assert events.ends == [False]
