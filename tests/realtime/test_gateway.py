from conectado.realtime.gateway import PushGateway, conversation_group, user_group


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.frames: list[dict] = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection reset")
        self.frames.append(data)


class TestGroups:
    def test_group_names(self):
        assert user_group(7) == "User_7"
        assert conversation_group("5_9") == "Conversation_5_9"

    async def test_should_track_membership(self):
        gateway = PushGateway()
        socket = FakeSocket()

        await gateway.add_to_group(socket, user_group(1))
        await gateway.add_to_group(socket, "Voluntarios")

        assert gateway.is_connected(1) is True
        assert gateway.group_size("Voluntarios") == 1

        await gateway.remove_from_group(socket, "Voluntarios")
        assert gateway.group_size("Voluntarios") == 0

        groups = await gateway.discard_connection(socket)
        assert groups == {user_group(1)}
        assert gateway.is_connected(1) is False


class TestDelivery:
    async def test_should_send_frame_to_every_socket_of_user(self):
        gateway = PushGateway()
        tab1, tab2 = FakeSocket(), FakeSocket()
        await gateway.add_to_group(tab1, user_group(1))
        await gateway.add_to_group(tab2, user_group(1))

        delivered = await gateway.send_to_user(1, "UnreadCount", {"count": 3})

        assert delivered == 2
        assert tab1.frames == [{"event": "UnreadCount", "data": {"count": 3}}]
        assert tab2.frames == tab1.frames

    async def test_should_return_zero_without_connections(self):
        assert await PushGateway().send_to_user(42, "UnreadCount", {"count": 1}) == 0

    async def test_should_drop_dead_socket_without_raising(self):
        gateway = PushGateway()
        alive, dead = FakeSocket(), FakeSocket(fail=True)
        await gateway.add_to_group(alive, user_group(1))
        await gateway.add_to_group(dead, user_group(1))

        delivered = await gateway.send_to_user(1, "ReceiveMessage", {"id": 1})

        assert delivered == 1
        assert gateway.group_size(user_group(1)) == 1
        assert len(alive.frames) == 1

    async def test_send_to_all_reaches_only_user_groups(self):
        gateway = PushGateway()
        user_socket, room_socket = FakeSocket(), FakeSocket()
        await gateway.add_to_group(user_socket, user_group(1))
        await gateway.add_to_group(room_socket, "Voluntarios")

        delivered = await gateway.send_to_all("ReceiveNotification", {"title": "Aviso"})

        assert delivered == 1
        assert room_socket.frames == []
