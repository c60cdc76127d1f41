from fogwalk.logger import Logger


def test_entries_are_bounded():
    logger = Logger(echo=False, max_entries=3)
    for i in range(5):
        logger.log(f"event {i}")
    assert logger.messages() == ["event 2", "event 3", "event 4"]


def test_callback_receives_message_and_data():
    received = []
    logger = Logger(echo=False, callback=lambda message, data: received.append((message, data)))
    logger.log("Street selected", {"street": "a"})
    assert received == [("Street selected", {"street": "a"})]


def test_log_file(tmp_path):
    path = tmp_path / "run.log"
    logger = Logger(str(path), echo=False)
    logger.log("Zone created", {"radius_km": 0.25})
    logger.close()
    text = path.read_text()
    assert "Fog of Walk Log" in text
    assert 'Zone created | {"radius_km": 0.25}' in text


def test_echo_prints(capsys):
    Logger().log("hello")
    assert "hello" in capsys.readouterr().out


def test_clear():
    logger = Logger(echo=False)
    logger.log("x")
    logger.clear()
    assert logger.messages() == []
