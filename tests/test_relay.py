import io


def test_relay_copies_output_and_returns_status(fake_channel_factory):
    from tacoshell.relay import StreamRelay

    channel = fake_channel_factory(output=b"hello from remote\n", exit_status=3)
    stdout = io.BytesIO()

    status = StreamRelay(channel, stdout=stdout).run()

    assert status == 3
    assert stdout.getvalue() == b"hello from remote\n"


def test_relay_keeps_stderr_separate(fake_channel_factory):
    from tacoshell.relay import StreamRelay

    channel = fake_channel_factory(output=b"out", stderr=b"something failed")
    stdout, stderr = io.BytesIO(), io.BytesIO()

    StreamRelay(channel, stdout=stdout, stderr=stderr).run()

    assert stdout.getvalue() == b"out"
    assert stderr.getvalue() == b"something failed"


def test_relay_forwards_input_then_sends_eof(fake_channel_factory):
    from tacoshell.relay import StreamRelay

    channel = fake_channel_factory(output=b"$ ", wait_for_input=True)
    stdin = io.BytesIO(b"ls -la\nexit\n")
    stdout = io.BytesIO()

    StreamRelay(channel, stdin=stdin, stdout=stdout, buffer_size=4).run()

    assert channel.input_closed.is_set()
    assert bytes(channel.sent) == b"ls -la\nexit\n"
    assert stdout.getvalue() == b"$ "


def test_relay_stops_on_channel_error(fake_channel_factory):
    from tacoshell.relay import StreamRelay

    class BrokenChannel(fake_channel_factory):
        def recv(self, nbytes):
            raise OSError("connection reset")

    channel = BrokenChannel(exit_status=-1)
    assert StreamRelay(channel, stdout=io.BytesIO()).run() == -1


def test_relay_discards_output_without_sink(fake_channel_factory):
    from tacoshell.relay import StreamRelay

    channel = fake_channel_factory(output=b"ignored")
    assert StreamRelay(channel).run() == 0
