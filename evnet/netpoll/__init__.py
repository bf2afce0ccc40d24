"""I/O pollers built on epoll and kqueue, with poll attachments, event masks and event lists."""