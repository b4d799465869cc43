from voicetest.speech.playback import SpeechPlaybackAdapter

from conftest import FakeSynthesizer


def test_speak_reports_completion_once():
	synth, done, changes = FakeSynthesizer(), [], []
	playback = SpeechPlaybackAdapter(synth, rate=0.9, lang="en-US", on_change=lambda: changes.append(1))
	uid = playback.speak("What is 7 times 8?", on_done=lambda: done.append(uid))
	assert playback.speaking
	assert synth.spoken == [("What is 7 times 8?", uid)]
	playback.handle_end(uid)
	playback.handle_end(uid)
	assert done == [uid]
	assert changes == [1]
	assert not playback.speaking


def test_preempted_utterance_never_calls_back():
	synth, done = FakeSynthesizer(), []
	playback = SpeechPlaybackAdapter(synth)
	first = playback.speak("one", on_done=lambda: done.append("one"))
	second = playback.speak("two", on_done=lambda: done.append("two"))
	assert synth.cancels == 1
	playback.handle_end(first)
	assert done == []
	playback.handle_end(second)
	assert done == ["two"]


def test_cancel_only_touches_engine_when_speaking():
	synth, done = FakeSynthesizer(), []
	playback = SpeechPlaybackAdapter(synth)
	playback.cancel()
	assert synth.cancels == 0
	playback.speak("hello", on_done=lambda: done.append(True))
	playback.cancel()
	assert synth.cancels == 1
	playback.handle_end()
	assert done == []


def test_synthesis_error_counts_as_end():
	synth, done = FakeSynthesizer(), []
	playback = SpeechPlaybackAdapter(synth)
	uid = playback.speak("hello", on_done=lambda: done.append(True))
	playback.handle_error("audio-busy", uid)
	assert done == [True]
	assert not playback.speaking
