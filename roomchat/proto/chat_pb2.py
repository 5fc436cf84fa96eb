# -*- coding: utf-8 -*-
# Protocol buffer messages for roomchat/proto/chat.proto.
# Keep in sync with chat.proto; can be regenerated with
#   python -m grpc_tools.protoc -I. --python_out=. --grpc_python_out=. roomchat/proto/chat.proto
"""Message classes for the roomchat Coordinator service."""
from google.protobuf import descriptor_pb2 as _descriptor_pb2
from google.protobuf import descriptor_pool as _descriptor_pool
from google.protobuf import symbol_database as _symbol_database
from google.protobuf.internal import builder as _builder

_sym_db = _symbol_database.Default()

_FD = _descriptor_pb2.FieldDescriptorProto
_STRING = _FD.TYPE_STRING
_BOOL = _FD.TYPE_BOOL
_INT32 = _FD.TYPE_INT32
_REPEATED = True

_file = _descriptor_pb2.FileDescriptorProto(
    name='roomchat/proto/chat.proto',
    package='roomchat',
    syntax='proto3',
)


def _message(name, fields, oneof=None):
    """Append a message type. Each field is (name, number, type[, repeated]);
    a str type names another message in this package."""
    msg = _file.message_type.add(name=name)
    if oneof is not None:
        msg.oneof_decl.add(name=oneof)
    for field_name, number, field_type, *repeated in fields:
        field = msg.field.add(name=field_name, number=number)
        field.label = _FD.LABEL_REPEATED if repeated else _FD.LABEL_OPTIONAL
        if isinstance(field_type, str):
            field.type = _FD.TYPE_MESSAGE
            field.type_name = '.roomchat.' + field_type
        else:
            field.type = field_type
        if oneof is not None:
            field.oneof_index = 0


# inbound
_message('Authenticate', [('token', 1, _STRING)])
_message('PostMessage', [('message', 1, _STRING), ('group', 2, _STRING)])
_message('Typing', [('group', 1, _STRING)])
_message('GroupRef', [('group_name', 1, _STRING)])
_message('ClientEvent', [
    ('authenticate', 1, 'Authenticate'),
    ('post_message', 2, 'PostMessage'),
    ('typing_start', 3, 'Typing'),
    ('typing_stop', 4, 'Typing'),
    ('join_group', 5, 'GroupRef'),
    ('leave_group', 6, 'GroupRef'),
    ('create_group', 7, 'GroupRef'),
], oneof='kind')

# outbound
_message('LogEntry', [
    ('type', 1, _STRING),
    ('username', 2, _STRING),
    ('message', 3, _STRING),
    ('event', 4, _STRING),
    ('group', 5, _STRING),
    ('timestamp', 6, _STRING),
])
_message('AuthStatus', [
    ('is_authenticated', 1, _BOOL),
    ('is_guest', 2, _BOOL),
    ('username', 3, _STRING),
    ('email', 4, _STRING),
])
_message('ChatHistory', [('chat_history', 1, 'LogEntry', _REPEATED), ('username', 2, _STRING)])
_message('GroupMessages', [('group', 1, _STRING), ('chat_history', 2, 'LogEntry', _REPEATED)])
_message('GroupList', [('groups', 1, _STRING, _REPEATED)])
_message('UserCount', [('count', 1, _INT32)])
_message('UserTyping', [('username', 1, _STRING), ('is_typing', 2, _BOOL), ('group', 3, _STRING)])
_message('Error', [('message', 1, _STRING)])
_message('ServerEvent', [
    ('auth_status', 1, 'AuthStatus'),
    ('receive_messages', 2, 'ChatHistory'),
    ('group_messages', 3, 'GroupMessages'),
    ('all_groups', 4, 'GroupList'),
    ('user_groups', 5, 'GroupList'),
    ('user_count', 6, 'UserCount'),
    ('user_typing', 7, 'UserTyping'),
    ('error', 8, 'Error'),
], oneof='kind')

# credentials
_message('SignupRequest', [('username', 1, _STRING), ('email', 2, _STRING), ('password', 3, _STRING)])
_message('LoginRequest', [('email_or_username', 1, _STRING), ('password', 2, _STRING)])
_message('VerifyRequest', [('token', 1, _STRING)])
_message('AuthResponse', [('token', 1, _STRING), ('username', 2, _STRING), ('email', 3, _STRING)])
_message('VerifyResponse', [('username', 1, _STRING), ('email', 2, _STRING)])

_service = _file.service.add(name='Coordinator')
_service.method.add(name='Connect', input_type='.roomchat.ClientEvent', output_type='.roomchat.ServerEvent',
                    client_streaming=True, server_streaming=True)
_service.method.add(name='Signup', input_type='.roomchat.SignupRequest', output_type='.roomchat.AuthResponse')
_service.method.add(name='Login', input_type='.roomchat.LoginRequest', output_type='.roomchat.AuthResponse')
_service.method.add(name='Verify', input_type='.roomchat.VerifyRequest', output_type='.roomchat.VerifyResponse')

DESCRIPTOR = _descriptor_pool.Default().AddSerializedFile(_file.SerializeToString())

_globals = globals()
_builder.BuildMessageAndEnumDescriptors(DESCRIPTOR, _globals)
_builder.BuildTopDescriptorsAndMessages(DESCRIPTOR, 'roomchat.proto.chat_pb2', _globals)
